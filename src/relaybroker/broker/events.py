"""
Events fed to the broker's single consumer task.
"""

from dataclasses import dataclass
from typing import Any

from relaybroker.sessions.models import ConnectionId, Declaration


@dataclass(frozen=True)
class Paired:
    """A connection declared a pairing."""

    connection_id: ConnectionId
    declaration: Declaration


@dataclass(frozen=True)
class Relayed:
    """A connection sent a command for its partner."""

    connection_id: ConnectionId
    payload: Any


@dataclass(frozen=True)
class Disconnected:
    """A connection closed."""

    connection_id: ConnectionId


BrokerEvent = Paired | Relayed | Disconnected
