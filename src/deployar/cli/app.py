"""
Root Typer application for the deployar CLI.

The CLI works directly on the JSON files in the data directory, so it can
seed users and saved commands before the server is started.  Running it
while the server is writing the same files can lose updates.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from deployar import __version__
from deployar.core.logging import configure_logging

app = Typer(
    name="deployar",
    help="deployar — run and track shell commands on this host.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"deployar {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for CLI commands."),
) -> None:
    """deployar CLI — serve the API, run commands, manage saved commands and users."""
    # stdout is reserved for command output
    configure_logging(level=log_level, json_format=False, stream=sys.stderr)


# ── Sub-command registration ─────────────────────────────────────────────
from deployar.cli.commands import app as commands_app  # noqa: E402
from deployar.cli.executions import app as executions_app  # noqa: E402
from deployar.cli.serve import serve  # noqa: E402
from deployar.cli.users import app as users_app  # noqa: E402

app.command("serve")(serve)
app.add_typer(executions_app, name="executions", help="Run commands and inspect execution history.")
app.add_typer(commands_app, name="commands", help="Saved command templates.")
app.add_typer(users_app, name="users", help="User accounts.")
