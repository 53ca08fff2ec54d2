"""
Broker I/O layer: wire models, connection registry and the event-driven
session broker that serialises all pairing, relay and disconnect handling.
"""

from relaybroker.broker.events import BrokerEvent, Disconnected, Paired, Relayed
from relaybroker.broker.hub import SessionBroker
from relaybroker.broker.models import (
    CommandMessage,
    ConnectionInfo,
    SessionInfo,
    SessionListResponse,
    SessionMessage,
    parse_message,
)
from relaybroker.broker.registry import (
    Connection,
    ConnectionRegistry,
    next_connection_id,
)

__all__ = [
    "BrokerEvent",
    "CommandMessage",
    "Connection",
    "ConnectionInfo",
    "ConnectionRegistry",
    "Disconnected",
    "Paired",
    "Relayed",
    "SessionBroker",
    "SessionInfo",
    "SessionListResponse",
    "SessionMessage",
    "next_connection_id",
    "parse_message",
]
