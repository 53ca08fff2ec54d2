"""
Starlette-based server for the relay broker.

Endpoints:
- WS  {ws_path}:     pairing handshake and command relay
- GET /:             landing page (static index file or JSON banner)
- GET /health:       liveness and counters
- GET /sessions:     session table as HTML (debug)
- GET /api/sessions: session table as JSON (debug)

Both ``/`` routes coexist: Starlette matches HTTP and WebSocket scopes
separately, so the WebSocket endpoint may share the root path.
"""

import contextlib
import os
import sys

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route, WebSocketRoute

from relaybroker.broker.hub import SessionBroker
from relaybroker.config import BrokerConfig
from relaybroker.logger import get_logger, setup_logging
from relaybroker.routes.broker_routes import (
    broker_websocket_endpoint,
    list_sessions,
    session_table_page,
)
from relaybroker.routes.health_routes import health_check, index

logger = get_logger(__name__)


def create_app(config: BrokerConfig | None = None) -> Starlette:
    """Build the ASGI application for a given config."""
    config = config or BrokerConfig.from_env()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Application startup - starting session broker")
        broker = SessionBroker()
        app.state.broker = broker
        await broker.start()
        try:
            yield
        finally:
            logger.info("Application shutdown - stopping session broker")
            await broker.stop()
            app.state.broker = None

    routes = [
        WebSocketRoute(config.ws_path, broker_websocket_endpoint),
        Route("/", index, methods=["GET"]),
        Route("/health", health_check, methods=["GET"]),
    ]
    if config.debug_endpoints:
        routes += [
            Route("/sessions", session_table_page, methods=["GET"]),
            Route("/api/sessions", list_sessions, methods=["GET"]),
        ]

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
            )
        ],
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.broker = None
    return app


def run(config: BrokerConfig | None = None, debug: bool = False) -> None:
    """Run the broker under uvicorn until interrupted."""
    import uvicorn

    config = config or BrokerConfig.from_env()
    if debug:
        config = config.with_overrides(log_level="DEBUG")

    setup_logging(level=config.log_level, log_file=config.log_file)
    logger.info(
        f"Starting relay broker on {config.host}:{config.port} "
        f"(websocket path {config.ws_path})"
    )

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


app = create_app()


if __name__ == "__main__":
    if "--debug" in sys.argv:
        os.environ["LOG_LEVEL"] = "DEBUG"
    run()
