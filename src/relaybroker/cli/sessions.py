"""
CLI subcommands for inspecting the broker's session table.

Usage:
    relaybroker sessions list
    relaybroker sessions status
"""

import typer

from relaybroker.cli._http import _http_get

sessions_app = typer.Typer(help="Inspect pairing sessions on a running broker")

_STATE_ICONS = {"confirmed": "🟢", "mismatched": "🟠", "pending": "⚪"}


@sessions_app.command("list")
def sessions_list():
    """List every session record."""
    data = _http_get("/api/sessions")
    sessions = data.get("sessions", [])

    if not sessions:
        typer.echo("No sessions.")
        return

    typer.echo(f"🔗 Sessions ({len(sessions)}):\n")
    for s in sessions:
        icon = _STATE_ICONS.get(s.get("state"), "⚪")
        partner = s.get("target_connection")
        typer.echo(
            f"  {icon} {s['client_id']} -> {s['target_id']} [{s.get('state')}]\n"
            f"     Connection: {s['client_connection']}\n"
            f"     Partner: {partner if partner is not None else 'none'}\n"
        )


@sessions_app.command("status")
def sessions_status():
    """Show a one-line summary of the session table."""
    data = _http_get("/api/sessions")
    sessions = data.get("sessions", [])
    confirmed = sum(1 for s in sessions if s.get("state") == "confirmed")
    mismatched = sum(1 for s in sessions if s.get("state") == "mismatched")
    pending = len(sessions) - confirmed - mismatched

    typer.echo(
        f"🔗 Sessions: {len(sessions)} "
        f"({confirmed} confirmed, {mismatched} mismatched, {pending} pending); "
        f"connections: {data.get('connections', 0)}"
    )
