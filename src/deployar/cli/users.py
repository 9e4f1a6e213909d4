"""
CLI: ``deployar users`` — manage accounts without going through the API.

Handy for creating the first account on a headless host, or for getting back
in after every password has been forgotten.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from deployar.cli.utils import (
    DATA_DIR_OPTION,
    cli_errors,
    console,
    load_settings,
    open_users,
    print_json,
    print_table,
)

app = typer.Typer(no_args_is_help=True)


@app.command("add")
def add_user(
    username: str = typer.Argument(..., help="At least 3 characters, no colon"),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="At least 4 characters (prompted when omitted)",
    ),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Create a user."""
    with cli_errors():
        user = open_users(load_settings(data_dir)).create(username, password)
    console.print(f"Created user [bold]{escape(user.username)}[/bold]")


@app.command("list")
def list_users(
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List users."""
    with cli_errors():
        users = open_users(load_settings(data_dir)).list_all()
    rows = [u.public_dict() for u in users]
    if json_out:
        print_json(rows)
        return
    print_table(rows, title="Users")


@app.command("delete")
def delete_user(
    username: str = typer.Argument(..., help="Username"),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Delete a user (never the last one)."""
    with cli_errors():
        open_users(load_settings(data_dir)).delete(username)
    console.print(f"Deleted user {username}")
