"""
CLI: ``deployar commands`` — saved command templates.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from deployar.catalog.models import CommandTemplate
from deployar.cli.executions import wait_and_report
from deployar.cli.utils import (
    DATA_DIR_OPTION,
    cli_errors,
    console,
    load_settings,
    open_catalog,
    open_engine,
    print_dict,
    print_json,
    print_table,
)
from deployar.core.errors import NotFoundError

app = typer.Typer(no_args_is_help=True)


def _row(tpl: CommandTemplate) -> dict[str, str]:
    return {
        "id": tpl.id,
        "name": tpl.name,
        "workdir": tpl.workdir,
        "command": tpl.command,
        "tags": ", ".join(tpl.tags),
    }


@app.command("list")
def list_commands(
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List saved commands by name."""
    with cli_errors():
        templates = open_catalog(load_settings(data_dir)).list_all()
    if json_out:
        print_json([t.to_dict() for t in templates])
        return
    print_table([_row(t) for t in templates], title="Commands")


@app.command("add")
def add_command(
    name: str = typer.Argument(..., help="Display name"),
    workdir: str = typer.Option(..., "--workdir", "-w", help="Working directory"),
    command: str = typer.Option(..., "--command", "-c", help="Shell command text"),
    description: str = typer.Option("", "--description"),
    tags: list[str] | None = typer.Option(None, "--tag", "-t", help="Repeat for several tags"),
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Save a command template."""
    with cli_errors():
        tpl = open_catalog(load_settings(data_dir)).create(
            name,
            workdir,
            command,
            description=description,
            tags=tags,
        )
    if json_out:
        print_json(tpl.to_dict())
        return
    console.print(f"Saved command [bold]{escape(tpl.name)}[/bold] ({tpl.id})")


@app.command("show")
def show_command(
    command_id: str = typer.Argument(..., help="Command ID"),
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one saved command."""
    with cli_errors():
        tpl = open_catalog(load_settings(data_dir)).require(command_id)
    if json_out:
        print_json(tpl.to_dict())
        return
    print_dict(tpl.to_dict(), title=f"Command: {tpl.name}")


@app.command("delete")
def delete_command(
    command_id: str = typer.Argument(..., help="Command ID"),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Delete a saved command.  Past executions keep their copy."""
    with cli_errors():
        if not open_catalog(load_settings(data_dir)).delete(command_id):
            raise NotFoundError(f"Command {command_id} not found")
    console.print(f"Deleted command {command_id}")


@app.command("run")
def run_command(
    command_id: str = typer.Argument(..., help="Command ID"),
    executed_by: str | None = typer.Option(None, "--by", help="Recorded as executed_by"),
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run a saved command, wait for it, and exit with its status."""
    with cli_errors():
        settings = load_settings(data_dir)
        tpl = open_catalog(settings).require(command_id)
        engine = open_engine(settings)
        record = engine.submit(
            tpl.workdir,
            tpl.command,
            command_id=tpl.id,
            name=tpl.name,
            executed_by=executed_by,
        )
    wait_and_report(engine, record, json_out=json_out)
