"""
Pairing engine.

Reconciles a connection's declaration (client_id, target_id, key) against the
session table. Existing records are classified as:

    forward  the record for (client_id, target_id), this side's own claim
    reverse  the record for (target_id, client_id), the peer's claim

and exactly one of four cases applies:

    forward  reverse   action                                   outcome
    -------  -------   --------------------------------------   ----------------------
    absent   absent    create forward, unlinked                 PENDING
    present  absent    rewrite forward in place, unlinked       PENDING
    absent   present   link reverse -> C, create linked forward CONFIRMED / MISMATCHED
    present  present   rewrite forward, link both ways          CONFIRMED / MISMATCHED

A linked pair is always updated as a unit, so each side's target_connection
is set iff the other side's record points back at it.
"""

from relaybroker.logger import get_logger
from relaybroker.sessions.errors import InvalidDeclaration
from relaybroker.sessions.models import (
    LINK_DOWN_SIGNAL,
    ConnectionId,
    Declaration,
    Outbound,
    PairingOutcome,
    PairingResult,
    SessionRecord,
)
from relaybroker.sessions.table import SessionTable

logger = get_logger(__name__)


class SessionEngine:
    """Implements the pairing handshake on top of a SessionTable."""

    def __init__(self, table: SessionTable):
        self.table = table

    def declare(
        self, connection_id: ConnectionId, declaration: Declaration
    ) -> PairingResult:
        """
        Apply a declaration from a connection.

        Args:
            connection_id: The declaring connection.
            declaration: The requested (client_id, target_id, key).

        Returns:
            The pairing outcome plus every notification it produced.

        Raises:
            InvalidDeclaration: If any field is missing. The table is untouched.
        """
        if not declaration.is_complete:
            logger.warning(
                f"Invalid declaration from connection {connection_id}: {declaration}"
            )
            raise InvalidDeclaration(
                f"client, target and key are required (got {declaration})"
            )

        notifications = self._drop_stale_record(connection_id, declaration)

        client_id, target_id, key = (
            declaration.client_id,
            declaration.target_id,
            declaration.key,
        )
        forward = self.table.find_by_pair(client_id, target_id)
        # A record never partners itself
        reverse = (
            None
            if client_id == target_id
            else self.table.find_by_pair(target_id, client_id)
        )

        if forward is None and reverse is None:
            logger.info(
                f"No record for {client_id}/{target_id}; adding for connection {connection_id}"
            )
            self.table.upsert(
                SessionRecord(
                    id=connection_id,
                    client_id=client_id,
                    target_id=target_id,
                    client_key=key,
                )
            )
            return self._pending(connection_id, notifications)

        if reverse is None:
            logger.info(
                f"Record {client_id}/{target_id} found; updating for connection {connection_id}"
            )
            self._take_ownership(forward, connection_id)
            forward.client_key = key
            forward.demote()
            return self._pending(connection_id, notifications)

        partner = reverse.client_connection

        if forward is None:
            logger.info(
                f"Peer record {target_id}/{client_id} found; linking and adding "
                f"{client_id}/{target_id} for connection {connection_id}"
            )
            forward = SessionRecord(
                id=connection_id,
                client_id=client_id,
                target_id=target_id,
                client_key=key,
            )
            forward.link(partner, reverse.client_key)
            self.table.upsert(forward)
        else:
            logger.info(
                f"Both {client_id}/{target_id} and {target_id}/{client_id} found; "
                f"relinking for connection {connection_id}"
            )
            self._take_ownership(forward, connection_id)
            forward.client_key = key
            forward.link(partner, reverse.client_key)

        reverse.link(connection_id, key)

        if key == reverse.client_key:
            outcome = PairingOutcome.CONFIRMED
        else:
            outcome = PairingOutcome.MISMATCHED
            logger.warning(
                f"Key mismatch between connections {connection_id} and {partner} "
                f"({client_id}<->{target_id})"
            )

        notifications.append(Outbound(connection_id, outcome.signal))
        notifications.append(Outbound(partner, outcome.signal))
        return PairingResult(
            outcome=outcome,
            connection_id=connection_id,
            partner_id=partner,
            notifications=tuple(notifications),
        )

    def _drop_stale_record(
        self, connection_id: ConnectionId, declaration: Declaration
    ) -> list[Outbound]:
        """
        Remove this connection's record if it was declared for another pair.

        The old partner, if it was linked to this connection, is demoted to
        pending and told its link is down.
        """
        stale = self.table.find(connection_id)
        if stale is None or stale.pair == declaration.pair:
            return []

        logger.info(
            f"Connection {connection_id} changing from {stale.client_id}/{stale.target_id} "
            f"to {declaration.client_id}/{declaration.target_id}; cleaning up"
        )
        self.table.remove(connection_id)

        old_partner = self.table.find_by_pair(*stale.reverse_pair)
        if old_partner is None or old_partner.target_connection != connection_id:
            return []

        old_partner.demote()
        return [Outbound(old_partner.client_connection, LINK_DOWN_SIGNAL)]

    def _take_ownership(self, record: SessionRecord, connection_id: ConnectionId) -> None:
        if record.id == connection_id:
            return
        logger.info(
            f"Session {record.client_id}/{record.target_id} moving from "
            f"connection {record.id} to {connection_id}"
        )
        self.table.remove(record.id)
        record.assign_owner(connection_id)
        self.table.upsert(record)

    @staticmethod
    def _pending(
        connection_id: ConnectionId, notifications: list[Outbound]
    ) -> PairingResult:
        notifications.append(Outbound(connection_id, PairingOutcome.PENDING.signal))
        return PairingResult(
            outcome=PairingOutcome.PENDING,
            connection_id=connection_id,
            notifications=tuple(notifications),
        )
