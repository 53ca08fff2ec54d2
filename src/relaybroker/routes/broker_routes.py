"""
Routes for the session broker.

Provides:
- WebSocket endpoint endpoints connect to (pairing + command relay)
- HTML and JSON views of the session table for operational inspection
"""

import html

from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.websockets import WebSocket, WebSocketDisconnect

from relaybroker.broker.models import (
    CommandMessage,
    ConnectionInfo,
    SessionInfo,
    SessionListResponse,
    SessionMessage,
    parse_message,
)
from relaybroker.broker.registry import Connection, next_connection_id
from relaybroker.logger import get_logger
from relaybroker.sessions.errors import MalformedMessage

logger = get_logger(__name__)

SESSION_TABLE_COLUMNS = (
    "ID",
    "clientID",
    "targetID",
    "client key",
    "target key",
    "client WS",
    "target WS",
)


def _get_broker(request_or_ws):
    """Get SessionBroker from app state."""
    app = getattr(request_or_ws, "app", None)
    if app is None:
        return None
    return getattr(app.state, "broker", None)


def _peer_of(websocket: WebSocket) -> str:
    client = websocket.client
    return f"{client.host}:{client.port}" if client else "unknown"


async def broker_websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for pairing endpoints.

    Protocol:
        Endpoint -> Broker:
            {"type": "SESSION", "client": "a", "target": "b", "key": "k"}
            {"type": "COMMAND", "command": <any>}

        Broker -> Endpoint (plain text):
            SESSION_UP | SESSION_NOT_UP: -1 | SESSION_NOT_UP: -2 | SESSION_NOT_UP: -100
            or a relayed command payload, as sent by the partner
    """
    broker = _get_broker(websocket)
    if not broker:
        await websocket.close(code=1011, reason="Broker not initialized")
        return

    await websocket.accept()

    connection = Connection(
        next_connection_id(), websocket.send_text, peer=_peer_of(websocket)
    )
    connection.start()
    broker.registry.register(connection)
    connection_id = connection.connection_id

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))

            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            logger.debug(f"Message received from {connection_id}: {raw[:200]!r}")

            try:
                message = parse_message(raw)
            except MalformedMessage as e:
                logger.info(f"Dropping message from {connection_id}: {e}")
                continue

            if isinstance(message, SessionMessage):
                broker.pair(connection_id, message.to_declaration())
            elif isinstance(message, CommandMessage):
                broker.command(connection_id, message.command)

    except WebSocketDisconnect:
        logger.info(f"Websocket disconnected: {connection_id}")
    except Exception as e:
        logger.error(f"Websocket error on connection {connection_id}: {e}")
    finally:
        broker.disconnect(connection_id)
        await connection.close()


def render_session_table(sessions: list[dict]) -> str:
    """Render session records as the HTML table shown at /sessions."""
    parts = ["<table border=1><tr>"]
    parts.extend(f"<td>{name}</td>" for name in SESSION_TABLE_COLUMNS)
    parts.append("</tr>")

    for s in sessions:
        cells = (
            s["id"],
            s["client_id"],
            s["target_id"],
            s["client_key"],
            s["target_key"],
            s["client_connection"],
            s["target_connection"],
        )
        parts.append("<tr>")
        parts.extend(
            f"<td>{'null' if v is None else html.escape(str(v))}</td>" for v in cells
        )
        parts.append("</tr>")

    parts.append("</table>")
    return "".join(parts)


async def session_table_page(request: Request) -> HTMLResponse:
    """GET /sessions — Session table as HTML."""
    broker = _get_broker(request)
    if not broker:
        return HTMLResponse("Broker not initialized", status_code=503)

    sessions = broker.list_sessions()
    logger.debug(f"Session table length: {len(sessions)}")
    return HTMLResponse(render_session_table(sessions))


async def list_sessions(request: Request) -> JSONResponse:
    """GET /api/sessions — Session table as JSON."""
    broker = _get_broker(request)
    if not broker:
        return JSONResponse(
            {"sessions": [], "error": "Broker not initialized"}, status_code=503
        )

    sessions = broker.list_sessions()
    resp = SessionListResponse(
        sessions=[SessionInfo(**s) for s in sessions],
        count=len(sessions),
        connections=broker.registry.connected_count,
        peers=[ConnectionInfo(**c) for c in broker.registry.list_connections()],
    )
    return JSONResponse(resp.model_dump())
