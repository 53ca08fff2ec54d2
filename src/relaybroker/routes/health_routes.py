"""
Health check and landing endpoints.
"""

from datetime import datetime
from pathlib import Path

from starlette.requests import Request
from starlette.responses import FileResponse, JSONResponse, Response

from relaybroker import __version__
from relaybroker.logger import get_logger

logger = get_logger(__name__)


async def health_check(request: Request) -> JSONResponse:
    """
    Basic health check endpoint.

    Returns 200 while the broker's consumer is running, 503 otherwise.
    """
    broker = getattr(request.app.state, "broker", None)
    if broker is None:
        return JSONResponse(
            {"status": "unavailable", "timestamp": datetime.now().isoformat()},
            status_code=503,
        )

    stats = broker.get_stats()
    return JSONResponse(
        {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now().isoformat(),
            **stats,
        }
    )


async def index(request: Request) -> Response:
    """GET / — Configured landing page, or a small JSON banner."""
    config = getattr(request.app.state, "config", None)
    index_file = getattr(config, "index_file", None)

    if index_file:
        path = Path(index_file).expanduser()
        if path.is_file():
            return FileResponse(path)
        logger.warning(f"Index file not found: {path}")

    return JSONResponse(
        {
            "service": "relaybroker",
            "version": __version__,
            "websocket": getattr(config, "ws_path", "/"),
        }
    )
