"""
Disconnect cleanup.
"""

from relaybroker.logger import get_logger
from relaybroker.sessions.models import LINK_DOWN_SIGNAL, ConnectionId, Outbound
from relaybroker.sessions.table import SessionTable

logger = get_logger(__name__)


class LifecycleManager:
    """Tears down a connection's session state when it goes away."""

    def __init__(self, table: SessionTable):
        self.table = table

    def disconnect(self, connection_id: ConnectionId) -> list[Outbound]:
        """
        Handle a connection closing.

        Any record linked to the connection is demoted to pending and its owner
        is told the link is down; the connection's own record is then removed.
        Both steps always run.

        Returns:
            Notifications for partners that lost their link.
        """
        notifications: list[Outbound] = []

        for partner in self._records_linked_to(connection_id):
            logger.info(
                f"Connection {connection_id} gone; demoting session of "
                f"connection {partner.id} ({partner.client_id}->{partner.target_id})"
            )
            partner.demote()
            notifications.append(Outbound(partner.client_connection, LINK_DOWN_SIGNAL))

        removed = self.table.remove(connection_id)
        if removed is not None:
            logger.info(
                f"Deleted session {connection_id} ({removed.client_id}->{removed.target_id})"
            )

        return notifications

    def _records_linked_to(self, connection_id: ConnectionId):
        # The only record that may point at this connection is the mirror of
        # its own declaration.
        own = self.table.find(connection_id)
        if own is None:
            return []
        partner = self.table.find_by_pair(*own.reverse_pair)
        if partner is None or partner is own:
            return []
        if partner.target_connection != connection_id:
            return []
        return [partner]
