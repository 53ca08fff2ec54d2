"""
Relay dispatch between confirmed partners.
"""

import json
from typing import Any

from relaybroker.logger import get_logger
from relaybroker.sessions.errors import KeyMismatch, NoPartner
from relaybroker.sessions.models import ConnectionId, Outbound
from relaybroker.sessions.table import SessionTable

logger = get_logger(__name__)


def encode_payload(payload: Any) -> str:
    """Strings go out verbatim; any other JSON value is re-serialised compactly."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


class RelayDispatcher:
    """Forwards command payloads to a connection's confirmed partner."""

    def __init__(self, table: SessionTable):
        self.table = table

    def route(self, connection_id: ConnectionId) -> ConnectionId:
        """
        Resolve the partner a connection's traffic should go to.

        Raises:
            NoPartner: The connection has no record, or its record is unlinked.
            KeyMismatch: Linked, but the two sides declared different keys.
        """
        record = self.table.find(connection_id)
        if record is None:
            raise NoPartner(f"connection {connection_id} has no session")
        if record.target_connection is None:
            raise NoPartner(
                f"connection {connection_id} ({record.client_id}->{record.target_id}) "
                "has no partner"
            )
        if not record.is_confirmed:
            raise KeyMismatch(
                f"connection {connection_id} ({record.client_id}->{record.target_id}) "
                "has not agreed a key with its partner"
            )
        return record.target_connection

    def relay(self, connection_id: ConnectionId, payload: Any) -> Outbound | None:
        """
        Build the delivery for a command payload, or drop it.

        Returns:
            The frame to send to the partner, or None if the payload was dropped.
        """
        try:
            target = self.route(connection_id)
        except (NoPartner, KeyMismatch) as e:
            logger.info(f"Invalid session ({e.code}), dropping command: {e}")
            return None

        logger.debug(f"Relaying command from connection {connection_id} to {target}")
        return Outbound(target, encode_payload(payload))
