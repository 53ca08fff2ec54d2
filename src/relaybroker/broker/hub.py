"""
Session broker.

Owns the session table and the connection registry, and applies every
pairing, relay and disconnect event from a single consumer task. Events are
handled one at a time, to completion, in arrival order, so the table is never
seen half-updated.
"""

import asyncio
import time
from typing import Any

from relaybroker.broker.events import BrokerEvent, Disconnected, Paired, Relayed
from relaybroker.broker.registry import ConnectionRegistry
from relaybroker.logger import get_logger
from relaybroker.sessions import (
    InvalidDeclaration,
    LifecycleManager,
    Outbound,
    PairingOutcome,
    RelayDispatcher,
    SessionEngine,
    SessionTable,
)
from relaybroker.sessions.models import ConnectionId, Declaration

logger = get_logger(__name__)


class SessionBroker:
    """
    Central coordinator for pairing and relay.

    Transport code calls ``submit`` (or the ``pair`` / ``command`` /
    ``disconnect`` helpers); the consumer task started by ``start`` does the
    rest.
    """

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        table: SessionTable | None = None,
    ):
        self.registry = registry or ConnectionRegistry()
        self.table = table or SessionTable()
        self.engine = SessionEngine(self.table)
        self.dispatcher = RelayDispatcher(self.table)
        self.lifecycle = LifecycleManager(self.table)
        self.inbox: asyncio.Queue[BrokerEvent] = asyncio.Queue()
        self.started_at: float | None = None
        self._consumer: asyncio.Task | None = None
        self._counters: dict[str, int] = {
            "declarations": 0,
            "confirmed": 0,
            "mismatched": 0,
            "invalid": 0,
            "commands_relayed": 0,
            "commands_dropped": 0,
            "disconnects": 0,
        }

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the consumer task."""
        if self._consumer is not None:
            return
        self.started_at = time.time()
        self._consumer = asyncio.create_task(self.run(), name="session-broker")
        logger.info("Session broker started")

    async def stop(self) -> None:
        """Stop the consumer and close every connection's writer."""
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        for connection in list(self.registry.connections.values()):
            await connection.close()
            self.registry.unregister(connection.connection_id)
        self.table.clear()
        logger.info("Session broker stopped")

    async def run(self) -> None:
        """Drain the inbox forever."""
        while True:
            event = await self.inbox.get()
            try:
                self.handle(event)
            except Exception as e:
                logger.exception(f"Error handling {event!r}: {e}")
            finally:
                self.inbox.task_done()

    async def drain(self) -> None:
        """Wait until every submitted event has been handled."""
        await self.inbox.join()

    # ─── Event intake ────────────────────────────────────────────────

    def submit(self, event: BrokerEvent) -> None:
        self.inbox.put_nowait(event)

    def pair(self, connection_id: ConnectionId, declaration: Declaration) -> None:
        self.submit(Paired(connection_id, declaration))

    def command(self, connection_id: ConnectionId, payload: Any) -> None:
        self.submit(Relayed(connection_id, payload))

    def disconnect(self, connection_id: ConnectionId) -> None:
        self.submit(Disconnected(connection_id))

    # ─── Handling ────────────────────────────────────────────────────

    def handle(self, event: BrokerEvent) -> None:
        """Apply one event synchronously and queue its outbound frames."""
        if isinstance(event, Paired):
            self._handle_paired(event)
        elif isinstance(event, Relayed):
            self._handle_relayed(event)
        elif isinstance(event, Disconnected):
            self._handle_disconnected(event)
        else:
            logger.warning(f"Unknown broker event: {event!r}")

    def _handle_paired(self, event: Paired) -> None:
        self._counters["declarations"] += 1
        try:
            result = self.engine.declare(event.connection_id, event.declaration)
        except InvalidDeclaration as e:
            self._counters["invalid"] += 1
            logger.warning(f"Session results for {event.connection_id}: {e}")
            self._deliver([Outbound(event.connection_id, e.signal)])
            return

        logger.info(
            f"Session results for {event.connection_id}: "
            f"{result.outcome.name} ({result.outcome.value})"
        )
        if result.outcome is PairingOutcome.CONFIRMED:
            self._counters["confirmed"] += 1
        elif result.outcome is PairingOutcome.MISMATCHED:
            self._counters["mismatched"] += 1
        self._deliver(result.notifications)

    def _handle_relayed(self, event: Relayed) -> None:
        outbound = self.dispatcher.relay(event.connection_id, event.payload)
        if outbound is None:
            self._counters["commands_dropped"] += 1
            return
        self._counters["commands_relayed"] += 1
        self._deliver([outbound])

    def _handle_disconnected(self, event: Disconnected) -> None:
        self._counters["disconnects"] += 1
        logger.info(f"Closing connection {event.connection_id}")
        notifications = self.lifecycle.disconnect(event.connection_id)
        self.registry.unregister(event.connection_id)
        self._deliver(notifications)

    def _deliver(self, frames) -> None:
        for frame in frames:
            self.registry.send(frame.connection_id, frame.text)

    # ─── Inspection ──────────────────────────────────────────────────

    def list_sessions(self) -> list[dict[str, Any]]:
        """Read-only snapshot of every session record."""
        return [record.to_dict() for record in self.table.records()]

    def get_stats(self) -> dict[str, Any]:
        uptime = time.time() - self.started_at if self.started_at else 0.0
        return {
            "uptime_seconds": int(uptime),
            "connections": self.registry.connected_count,
            "sessions": self.table.get_stats(),
            "counters": dict(self._counters),
            "queued_events": self.inbox.qsize(),
        }
