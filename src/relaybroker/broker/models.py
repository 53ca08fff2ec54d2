"""
Pydantic models for the broker.

Covers:
- WebSocket protocol messages (SESSION, COMMAND)
- REST API response schemas for session inspection
"""

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from relaybroker.logger import get_logger
from relaybroker.sessions.errors import MalformedMessage
from relaybroker.sessions.models import Declaration

logger = get_logger(__name__)


# ─── WebSocket Protocol Messages ─────────────────────────────────────


class SessionMessage(BaseModel):
    """Endpoint → Broker: declare the peer to reach and the shared key."""

    type: Literal["SESSION"] = "SESSION"
    client: str | None = None
    target: str | None = None
    key: str | None = None

    @field_validator("client", "target", "key", mode="before")
    @classmethod
    def _non_strings_are_absent(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    def to_declaration(self) -> Declaration:
        return Declaration(client_id=self.client, target_id=self.target, key=self.key)


class CommandMessage(BaseModel):
    """Endpoint → Broker: payload to forward to the confirmed partner."""

    type: Literal["COMMAND"] = "COMMAND"
    command: Any


InboundMessage = Union[SessionMessage, CommandMessage]


def parse_message(raw: str | bytes) -> InboundMessage | None:
    """
    Decode one inbound frame.

    Returns:
        The typed message, or None for a well-formed object of unknown type.

    Raises:
        MalformedMessage: If the frame is not JSON (or nests too deeply to
            decode), not an object, or a COMMAND without a command.
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # Deeply nested arrays/objects raise RecursionError
        raise MalformedMessage(f"unparseable frame: {e}") from None

    if not isinstance(data, dict):
        raise MalformedMessage(f"frame is not an object: {data!r}")

    msg_type = data.get("type")
    if msg_type == "SESSION":
        return SessionMessage(**data)
    if msg_type == "COMMAND":
        try:
            return CommandMessage(**data)
        except ValidationError as e:
            raise MalformedMessage(f"invalid COMMAND: {e}") from None

    logger.warning(f"Received unknown message type: {msg_type!r}")
    return None


# ─── REST API Models ─────────────────────────────────────────────────


class SessionInfo(BaseModel):
    """Serialized session record for API responses."""

    id: int
    client_id: str
    target_id: str
    client_key: str | None
    target_key: str | None = None
    client_connection: int
    target_connection: int | None = None
    state: str


class ConnectionInfo(BaseModel):
    """A live WebSocket connection."""

    connection_id: int
    peer: str
    status: str
    connected_at: str


class SessionListResponse(BaseModel):
    """GET /api/sessions response."""

    sessions: list[SessionInfo] = Field(default_factory=list)
    count: int = 0
    connections: int = 0
    peers: list[ConnectionInfo] = Field(default_factory=list)
