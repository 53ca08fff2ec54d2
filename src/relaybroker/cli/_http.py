"""
Shared HTTP helpers for CLI commands that talk to the running broker.
"""

import os

import typer

from relaybroker.config import DEFAULT_PORT


def get_server_url() -> str:
    """Get the broker's base URL from environment or default."""
    explicit = os.getenv("BROKER_SERVER_URL")
    if explicit:
        return explicit.rstrip("/")

    port = os.getenv("BROKER_PORT") or str(DEFAULT_PORT)
    host = os.getenv("BROKER_CLIENT_HOST", "localhost")
    return f"http://{host}:{port}"


def get_ws_url() -> str:
    """WebSocket URL derived from the HTTP base URL and BROKER_WS_PATH."""
    base = get_server_url()
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    path = os.getenv("BROKER_WS_PATH", "/") or "/"
    if not path.startswith("/"):
        path = "/" + path
    return f"{base}{path}"


def _http_get(path: str) -> dict:
    """Make a GET request to the running broker."""
    import httpx

    url = f"{get_server_url()}{path}"
    try:
        resp = httpx.get(url, timeout=10.0)
        resp.raise_for_status()
        return resp.json()
    except httpx.ConnectError:
        typer.echo("❌ Cannot connect to relay broker. Is it running?")
        raise typer.Exit(code=1)
    except httpx.HTTPStatusError as e:
        typer.echo(f"❌ Server error: {e.response.status_code}")
        raise typer.Exit(code=1)
    except Exception as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
