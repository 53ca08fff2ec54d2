"""
Tests for the event-driven session broker, using fake send capabilities.
"""

from unittest.mock import AsyncMock

import pytest

from relaybroker.broker import (
    Connection,
    ConnectionRegistry,
    Disconnected,
    Paired,
    Relayed,
    SessionBroker,
)
from relaybroker.sessions import Declaration


def _sent(connection_mock):
    return [c.args[0] for c in connection_mock.await_args_list]


async def _settle(broker, *connections):
    await broker.drain()
    for connection in connections:
        await connection.flush()


async def _connect(broker, connection_id, send=None):
    send = send or AsyncMock()
    connection = Connection(connection_id, send)
    connection.start()
    broker.registry.register(connection)
    return connection, send


class TestConnectionRegistry:
    @pytest.mark.asyncio
    async def test_register_send_unregister(self):
        registry = ConnectionRegistry()
        send = AsyncMock()
        connection = Connection(1, send, peer="127.0.0.1:5000")
        connection.start()
        registry.register(connection)

        [info] = registry.list_connections()
        assert info["connection_id"] == 1
        assert info["peer"] == "127.0.0.1:5000"
        assert info["status"] == "connected"

        assert registry.send(1, "hello") is True
        await connection.flush()
        send.assert_awaited_once_with("hello")

        assert registry.unregister(1) is True
        assert registry.send(1, "again") is False
        assert registry.unregister(1) is False
        await connection.close()

    @pytest.mark.asyncio
    async def test_frames_keep_order(self):
        send = AsyncMock()
        connection = Connection(1, send)
        connection.start()
        for i in range(5):
            connection.send(str(i))
        await connection.flush()
        assert _sent(send) == ["0", "1", "2", "3", "4"]
        await connection.close()

    @pytest.mark.asyncio
    async def test_send_failure_is_contained(self):
        send = AsyncMock(side_effect=[RuntimeError("socket gone"), None])
        connection = Connection(1, send)
        connection.start()
        connection.send("first")
        connection.send("second")
        await connection.flush()
        assert _sent(send) == ["first", "second"]
        await connection.close()

    @pytest.mark.asyncio
    async def test_closed_connection_refuses_frames(self):
        connection = Connection(1, AsyncMock())
        connection.start()
        await connection.close()
        assert connection.send("late") is False
        assert connection.to_dict()["status"] == "disconnected"


class TestSessionBroker:
    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self):
        broker = SessionBroker()
        await broker.start()
        a, a_send = await _connect(broker, 1)
        b, b_send = await _connect(broker, 2)

        broker.pair(1, Declaration("a", "b", "k"))
        await _settle(broker, a, b)
        assert _sent(a_send) == ["SESSION_NOT_UP: -1"]
        assert _sent(b_send) == []

        broker.pair(2, Declaration("b", "a", "k"))
        await _settle(broker, a, b)
        assert _sent(a_send)[-1] == "SESSION_UP"
        assert _sent(b_send) == ["SESSION_UP"]

        broker.command(1, "ping")
        await _settle(broker, a, b)
        assert _sent(b_send)[-1] == "ping"

        broker.disconnect(2)
        await b.close()
        await _settle(broker, a)
        assert _sent(a_send)[-1] == "SESSION_NOT_UP: -1"
        assert 2 not in broker.registry
        assert broker.table.find(2) is None
        assert broker.table.find(1).state == "pending"

        await broker.stop()

    @pytest.mark.asyncio
    async def test_invalid_declaration_answers_declarer_only(self):
        broker = SessionBroker()
        await broker.start()
        a, a_send = await _connect(broker, 1)
        b, b_send = await _connect(broker, 2)

        broker.submit(Paired(1, Declaration("a", None, "k")))
        await _settle(broker, a, b)

        assert _sent(a_send) == ["SESSION_NOT_UP: -100"]
        assert _sent(b_send) == []
        assert len(broker.table) == 0
        assert broker.get_stats()["counters"]["invalid"] == 1

        await broker.stop()

    @pytest.mark.asyncio
    async def test_mismatch_notifies_both_and_blocks_relay(self):
        broker = SessionBroker()
        await broker.start()
        a, a_send = await _connect(broker, 1)
        b, b_send = await _connect(broker, 2)

        broker.pair(1, Declaration("a", "b", "k1"))
        broker.pair(2, Declaration("b", "a", "k2"))
        broker.submit(Relayed(1, "ping"))
        broker.submit(Relayed(2, "pong"))
        await _settle(broker, a, b)

        assert _sent(a_send) == ["SESSION_NOT_UP: -1", "SESSION_NOT_UP: -2"]
        assert _sent(b_send) == ["SESSION_NOT_UP: -2"]
        counters = broker.get_stats()["counters"]
        assert counters["mismatched"] == 1
        assert counters["commands_dropped"] == 2

        await broker.stop()

    @pytest.mark.asyncio
    async def test_identity_change_notifies_old_partner(self):
        broker = SessionBroker()
        await broker.start()
        a, a_send = await _connect(broker, 1)
        b, b_send = await _connect(broker, 2)

        broker.pair(1, Declaration("a", "b", "k"))
        broker.pair(2, Declaration("b", "a", "k"))
        broker.pair(1, Declaration("a", "c", "k"))
        broker.command(2, "ping")
        await _settle(broker, a, b)

        assert _sent(b_send) == ["SESSION_UP", "SESSION_NOT_UP: -1"]
        assert _sent(a_send)[-1] == "SESSION_NOT_UP: -1"
        assert broker.table.find_by_pair("a", "b") is None

        await broker.stop()

    @pytest.mark.asyncio
    async def test_relay_without_session_is_inert(self):
        broker = SessionBroker()
        await broker.start()
        a, a_send = await _connect(broker, 1)

        broker.command(1, "ping")
        await _settle(broker, a)

        assert _sent(a_send) == []
        assert len(broker.table) == 0

        await broker.stop()

    @pytest.mark.asyncio
    async def test_send_to_departed_partner_is_dropped(self):
        broker = SessionBroker()
        await broker.start()
        a, a_send = await _connect(broker, 1)

        # Partner record exists but its connection was never registered
        broker.handle(Paired(2, Declaration("b", "a", "k")))
        broker.pair(1, Declaration("a", "b", "k"))
        await _settle(broker, a)

        assert _sent(a_send) == ["SESSION_UP"]

        await broker.stop()

    @pytest.mark.asyncio
    async def test_disconnect_of_unknown_connection(self):
        broker = SessionBroker()
        await broker.start()
        broker.submit(Disconnected(42))
        await broker.drain()
        assert broker.get_stats()["counters"]["disconnects"] == 1
        await broker.stop()

    @pytest.mark.asyncio
    async def test_list_sessions_snapshot(self):
        broker = SessionBroker()
        broker.handle(Paired(1, Declaration("a", "b", "k")))
        broker.handle(Paired(2, Declaration("b", "a", "k")))

        sessions = broker.list_sessions()
        assert [s["id"] for s in sessions] == [1, 2]
        assert all(s["state"] == "confirmed" for s in sessions)

        stats = broker.get_stats()
        assert stats["sessions"]["confirmed"] == 2
        assert stats["connections"] == 0

    @pytest.mark.asyncio
    async def test_stop_closes_connections(self):
        broker = SessionBroker()
        await broker.start()
        a, _ = await _connect(broker, 1)
        broker.pair(1, Declaration("a", "b", "k"))
        await _settle(broker, a)

        await broker.stop()

        assert len(broker.registry) == 0
        assert len(broker.table) == 0
        assert a.status == "disconnected"
