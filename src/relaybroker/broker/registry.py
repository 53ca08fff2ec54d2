"""
Registry of live connections.

Maps a connection id to its send capability. Each connection owns an outbox
drained by a single writer task, so the broker never waits on a slow socket
and frames to one connection leave in the order they were queued.
"""

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from relaybroker.logger import get_logger
from relaybroker.sessions.models import ConnectionId

logger = get_logger(__name__)

SendText = Callable[[str], Awaitable[None]]

_connection_ids = itertools.count(1)


def next_connection_id() -> ConnectionId:
    """Process-unique, monotonically increasing connection id."""
    return next(_connection_ids)


class Connection:
    """
    A registered connection and its outbound queue.

    Args:
        connection_id: Identity used as the session table key.
        send_text: Coroutine that writes one text frame to the transport.
        peer: Optional printable peer address, for logs and inspection.
    """

    def __init__(
        self,
        connection_id: ConnectionId,
        send_text: SendText,
        peer: str | None = None,
    ):
        self.connection_id = connection_id
        self.peer = peer or "unknown"
        self.connected_at: datetime = datetime.now()
        self.status: str = "connected"
        self._send_text = send_text
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer: asyncio.Task | None = None

    def start(self) -> None:
        """Start the writer task. Must run inside the event loop."""
        if self._writer is None:
            self._writer = asyncio.create_task(
                self._drain(), name=f"writer-{self.connection_id}"
            )

    def send(self, text: str) -> bool:
        """
        Queue a frame without waiting for it to be written.

        Returns:
            False if the connection is already closed.
        """
        if self.status != "connected":
            logger.warning(
                f"Dropping frame for closed connection {self.connection_id}: {text[:60]!r}"
            )
            return False
        self._outbox.put_nowait(text)
        return True

    async def _drain(self) -> None:
        while True:
            text = await self._outbox.get()
            try:
                await self._send_text(text)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Send to connection {self.connection_id} failed: {e}")
            finally:
                self._outbox.task_done()

    async def flush(self) -> None:
        """Wait until every queued frame has been handed to the transport."""
        await self._outbox.join()

    async def close(self) -> None:
        """Stop the writer; frames still queued are discarded."""
        self.status = "disconnected"
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "peer": self.peer,
            "status": self.status,
            "connected_at": self.connected_at.isoformat(),
        }


class ConnectionRegistry:
    """Live connections by id."""

    def __init__(self):
        self.connections: dict[ConnectionId, Connection] = {}

    def register(self, connection: Connection) -> None:
        logger.info(
            f"Websocket connected: {connection.connection_id} ({connection.peer})"
        )
        self.connections[connection.connection_id] = connection

    def unregister(self, connection_id: ConnectionId) -> bool:
        """
        Remove a connection from the registry.

        Returns:
            True if the connection was found and removed, False otherwise.
        """
        connection = self.connections.pop(connection_id, None)
        if connection:
            connection.status = "disconnected"
            logger.info(f"Unregistered connection {connection_id}")
            return True
        logger.debug(f"Attempted to unregister unknown connection: {connection_id}")
        return False

    def send(self, connection_id: ConnectionId, text: str) -> bool:
        """Fire-and-forget send; unknown connections are logged and skipped."""
        connection = self.connections.get(connection_id)
        if connection is None:
            logger.warning(
                f"No connection {connection_id}; dropping frame {text[:60]!r}"
            )
            return False
        return connection.send(text)

    def list_connections(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.connections.values()]

    @property
    def connected_count(self) -> int:
        return sum(1 for c in self.connections.values() if c.status == "connected")

    def __len__(self) -> int:
        return len(self.connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self.connections
