"""
In-memory session table.

Holds at most one record per connection and at most one record per declared
(client_id, target_id) pair, indexed both ways for O(1) lookups. Only the
broker's single consumer task mutates it; nothing outside this class touches
the underlying dicts.
"""

from collections.abc import Callable, Iterator

from relaybroker.logger import get_logger
from relaybroker.sessions.models import ConnectionId, SessionRecord

logger = get_logger(__name__)


class SessionTable:
    """Registry of session records keyed by owning connection and by pair."""

    def __init__(self):
        self._by_connection: dict[ConnectionId, SessionRecord] = {}
        self._by_pair: dict[tuple[str, str], SessionRecord] = {}

    def find(self, connection_id: ConnectionId) -> SessionRecord | None:
        """Return the record owned by a connection, if any."""
        return self._by_connection.get(connection_id)

    def find_by_pair(self, client_id: str, target_id: str) -> SessionRecord | None:
        """Return the record declared for (client_id, target_id), if any."""
        return self._by_pair.get((client_id, target_id))

    def upsert(self, record: SessionRecord) -> None:
        """
        Store a record under its current owner and pair.

        Any other record occupying either slot is evicted, which keeps both
        indices one-to-one.
        """
        for existing in (
            self._by_connection.get(record.id),
            self._by_pair.get(record.pair),
        ):
            if existing is not None and existing is not record:
                logger.debug(
                    f"Evicting session {existing.id} {existing.pair} "
                    f"in favour of {record.id} {record.pair}"
                )
                self._discard(existing)

        self._by_connection[record.id] = record
        self._by_pair[record.pair] = record

    def remove(self, connection_id: ConnectionId) -> SessionRecord | None:
        """
        Remove the record owned by a connection.

        Returns:
            The removed record, or None if the connection owned none.
        """
        record = self._by_connection.get(connection_id)
        if record is None:
            return None
        self._discard(record)
        return record

    def where(
        self, predicate: Callable[[SessionRecord], bool]
    ) -> list[SessionRecord]:
        """Return all records matching a predicate (full scan)."""
        return [r for r in self._by_connection.values() if predicate(r)]

    def records(self) -> list[SessionRecord]:
        """Snapshot of all records, in insertion order."""
        return list(self._by_connection.values())

    def clear(self) -> None:
        self._by_connection.clear()
        self._by_pair.clear()

    def get_stats(self) -> dict[str, int]:
        """Counts for monitoring."""
        linked = sum(1 for r in self._by_connection.values() if r.is_linked)
        confirmed = sum(1 for r in self._by_connection.values() if r.is_confirmed)
        return {
            "total": len(self._by_connection),
            "pending": len(self._by_connection) - linked,
            "linked": linked,
            "confirmed": confirmed,
        }

    def _discard(self, record: SessionRecord) -> None:
        if self._by_connection.get(record.id) is record:
            del self._by_connection[record.id]
        if self._by_pair.get(record.pair) is record:
            del self._by_pair[record.pair]

    def __len__(self) -> int:
        return len(self._by_connection)

    def __iter__(self) -> Iterator[SessionRecord]:
        return iter(self.records())

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._by_connection
