"""
Top-level CLI commands: serve, connect.
"""

import os
from typing import Optional

import typer


def configure_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    from relaybroker.logger import setup_logging

    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "WARNING")
    setup_logging(level=log_level)


def register_commands(app: typer.Typer):
    """Register top-level commands onto the app."""

    @app.command()
    def serve(
        host: Optional[str] = typer.Option(None, help="Host to bind to"),
        port: Optional[int] = typer.Option(None, help="Port to bind to"),
        ws_path: Optional[str] = typer.Option(
            None, "--ws-path", help="WebSocket endpoint path"
        ),
        debug: bool = typer.Option(False, "--debug", help="Run in debug mode"),
    ):
        """Start the relay broker server."""
        from relaybroker.config import BrokerConfig
        from relaybroker.server import run

        config = BrokerConfig.from_env().with_overrides(
            host=host, port=port, ws_path=ws_path
        )
        typer.echo(f"🚀 Starting relay broker on {config.host}:{config.port}...")
        run(config, debug=debug)

    @app.command()
    def connect(
        client: str = typer.Option(..., "--client", "-c", help="This endpoint's ID"),
        target: str = typer.Option(..., "--target", "-t", help="Peer endpoint's ID"),
        key: str = typer.Option(..., "--key", "-k", help="Shared key"),
        url: Optional[str] = typer.Option(
            None, "--url", help="Broker WebSocket URL (default from environment)"
        ),
    ):
        """Pair with a peer through the broker and exchange commands via stdin/stdout."""
        import asyncio

        from relaybroker.cli._http import get_ws_url
        from relaybroker.endpoint import Endpoint, run_interactive

        broker_url = url or get_ws_url()

        def on_signal(name: str, code: int | None):
            if code is None:
                typer.echo(f"✅ {name}")
            else:
                typer.echo(f"⏳ {name}: {code}")

        endpoint = Endpoint(
            client_id=client,
            target_id=target,
            key=key,
            url=broker_url,
            on_signal=on_signal,
            on_payload=lambda text: typer.echo(f"⬅️  {text}"),
        )

        typer.echo(f"🔌 Pairing '{client}' -> '{target}' via {broker_url}")
        typer.echo("   Type a line to send it as a command. Ctrl+C to stop.\n")

        try:
            asyncio.run(run_interactive(endpoint))
        except KeyboardInterrupt:
            typer.echo("\n🛑 Endpoint stopped.")
