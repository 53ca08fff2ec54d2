"""
Session pairing core.

Connections declare which peer they want to reach and a shared key; once
both sides' declarations mirror each other and the keys agree, commands
from either side are relayed to the other.
"""

from relaybroker.sessions.engine import SessionEngine
from relaybroker.sessions.errors import (
    InvalidDeclaration,
    KeyMismatch,
    MalformedMessage,
    NoPartner,
    SessionError,
)
from relaybroker.sessions.lifecycle import LifecycleManager
from relaybroker.sessions.models import (
    LINK_DOWN_SIGNAL,
    SESSION_UP,
    ConnectionId,
    Declaration,
    Outbound,
    PairingOutcome,
    PairingResult,
    SessionRecord,
)
from relaybroker.sessions.relay import RelayDispatcher, encode_payload
from relaybroker.sessions.table import SessionTable

__all__ = [
    "ConnectionId",
    "Declaration",
    "InvalidDeclaration",
    "KeyMismatch",
    "LINK_DOWN_SIGNAL",
    "LifecycleManager",
    "MalformedMessage",
    "NoPartner",
    "Outbound",
    "PairingOutcome",
    "PairingResult",
    "RelayDispatcher",
    "SESSION_UP",
    "SessionEngine",
    "SessionError",
    "SessionRecord",
    "SessionTable",
    "encode_payload",
]
