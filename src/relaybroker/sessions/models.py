"""
Data model for the pairing core.

A session record is directional: it belongs to the connection that declared
it and, once a partner has declared the mirrored pair, points back at that
partner's connection. A linked pair is always two records, one per side.
"""

from dataclasses import dataclass
from enum import Enum

ConnectionId = int

# Outbound text signals. Plain strings on the wire, not JSON.
SESSION_UP = "SESSION_UP"
SESSION_NOT_UP = "SESSION_NOT_UP"


class PairingOutcome(Enum):
    """Result of a declaration; the value is the numeric wire code."""

    CONFIRMED = 0
    PENDING = -1
    MISMATCHED = -2
    INVALID = -100

    @property
    def signal(self) -> str:
        if self is PairingOutcome.CONFIRMED:
            return SESSION_UP
        return f"{SESSION_NOT_UP}: {self.value}"


LINK_DOWN_SIGNAL = PairingOutcome.PENDING.signal


@dataclass(frozen=True)
class Declaration:
    """A pairing request naming (client_id, target_id, key)."""

    client_id: str | None
    target_id: str | None
    key: str | None

    @property
    def is_complete(self) -> bool:
        return None not in (self.client_id, self.target_id, self.key)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.client_id, self.target_id)


@dataclass
class SessionRecord:
    """
    One connection's pairing intent and, once matched, its relay link.

    ``id`` and ``client_connection`` always name the owning connection.
    ``target_connection`` is a non-owning reference to the partner's
    connection; it is cleared, never followed, once the partner goes away.
    """

    id: ConnectionId
    client_id: str
    target_id: str
    client_key: str
    target_key: str | None = None
    client_connection: ConnectionId | None = None
    target_connection: ConnectionId | None = None

    def __post_init__(self):
        if self.client_connection is None:
            self.client_connection = self.id

    @property
    def pair(self) -> tuple[str, str]:
        return (self.client_id, self.target_id)

    @property
    def reverse_pair(self) -> tuple[str, str]:
        return (self.target_id, self.client_id)

    @property
    def is_linked(self) -> bool:
        return self.target_connection is not None

    @property
    def is_confirmed(self) -> bool:
        return (
            self.target_connection is not None
            and self.client_key is not None
            and self.client_key == self.target_key
        )

    @property
    def state(self) -> str:
        if not self.is_linked:
            return "pending"
        return "confirmed" if self.is_confirmed else "mismatched"

    def assign_owner(self, connection_id: ConnectionId) -> None:
        self.id = connection_id
        self.client_connection = connection_id

    def link(self, partner: ConnectionId, partner_key: str | None) -> None:
        self.target_connection = partner
        self.target_key = partner_key

    def demote(self) -> None:
        """Drop the partner side, back to pending."""
        self.target_connection = None
        self.target_key = None

    def to_dict(self) -> dict:
        """Serialize for the inspection endpoints."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "target_id": self.target_id,
            "client_key": self.client_key,
            "target_key": self.target_key,
            "client_connection": self.client_connection,
            "target_connection": self.target_connection,
            "state": self.state,
        }


@dataclass(frozen=True)
class Outbound:
    """A text frame the broker must send on a connection."""

    connection_id: ConnectionId
    text: str


@dataclass(frozen=True)
class PairingResult:
    """What a declaration did, and who needs to hear about it."""

    outcome: PairingOutcome
    connection_id: ConnectionId
    partner_id: ConnectionId | None = None
    notifications: tuple[Outbound, ...] = ()
