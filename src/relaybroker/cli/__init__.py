"""
relaybroker CLI.

This package splits CLI commands into focused modules:
- main:     serve, connect
- sessions: list, status
"""

import typer

from relaybroker.cli._http import _http_get  # noqa: F401 (re-export for test patching)
from relaybroker.cli.main import configure_logging, register_commands
from relaybroker.cli.sessions import sessions_app

app = typer.Typer(help="relaybroker - pair endpoints and relay commands between them")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    relaybroker - pair endpoints and relay commands between them.
    """
    configure_logging(verbose)


register_commands(app)

app.add_typer(sessions_app, name="sessions")

if __name__ == "__main__":
    app()
