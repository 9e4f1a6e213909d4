"""
CLI: ``deployar executions`` — run commands and inspect execution history.
"""

from __future__ import annotations

from pathlib import Path

import typer

from deployar.cli.utils import (
    DATA_DIR_OPTION,
    cli_errors,
    console,
    err_console,
    execution_row,
    exit_code_for,
    load_settings,
    open_engine,
    print_dict,
    print_json,
    print_table,
)
from deployar.core.errors import NotFoundError
from deployar.execution.engine import ExecutionEngine
from deployar.execution.models import ExecutionRecord

app = typer.Typer(no_args_is_help=True)


def wait_and_report(engine: ExecutionEngine, record: ExecutionRecord, *, json_out: bool) -> None:
    """Block until *record* finishes, print it, and exit with its status."""
    engine.wait(record.id)
    finished = engine.get(record.id) or record
    if json_out:
        print_json(finished.to_dict())
    else:
        if finished.output:
            typer.echo(finished.output.rstrip("\n"))
        err_console.print(
            f"[dim]{finished.id} {finished.status.value} "
            f"exit={finished.exit_code} in {finished.duration}[/dim]",
            highlight=False,
        )
    raise typer.Exit(code=exit_code_for(finished))


@app.command("list")
def list_executions(
    limit: int | None = typer.Option(None, "--limit", "-n", min=0, help="Show at most N, newest first"),
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List executions, newest first."""
    with cli_errors():
        engine = open_engine(load_settings(data_dir))
        records = engine.list_all() if limit is None else engine.list_recent(limit)
    if json_out:
        print_json([r.to_dict() for r in records])
        return
    print_table([execution_row(r) for r in records], title="Executions")


@app.command("show")
def show_execution(
    execution_id: str = typer.Argument(..., help="Execution ID"),
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one execution including its output."""
    with cli_errors():
        record = open_engine(load_settings(data_dir)).get(execution_id)
        if record is None:
            raise NotFoundError(f"Execution {execution_id} not found")
    if json_out:
        print_json(record.to_dict())
        return
    data = record.to_dict()
    output = data.pop("output", "")
    print_dict(data, title=f"Execution: {execution_id}")
    if output:
        console.rule("output")
        typer.echo(output.rstrip("\n"))


@app.command("delete")
def delete_execution(
    execution_id: str = typer.Argument(..., help="Execution ID"),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Delete one execution record."""
    with cli_errors():
        if not open_engine(load_settings(data_dir)).delete(execution_id):
            raise NotFoundError(f"Execution {execution_id} not found")
    console.print(f"Deleted execution {execution_id}")


@app.command("clear")
def clear_executions(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Delete every execution record."""
    if not yes:
        typer.confirm("Delete all executions?", abort=True)
    with cli_errors():
        removed = open_engine(load_settings(data_dir)).clear()
    console.print(f"Cleared {removed} execution(s)")


@app.command("run")
def run_execution(
    workdir: str = typer.Argument(..., help="Working directory"),
    command: str = typer.Argument(..., help="Shell command text"),
    executed_by: str | None = typer.Option(None, "--by", help="Recorded as executed_by"),
    data_dir: Path | None = DATA_DIR_OPTION,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run an ad-hoc command, wait for it, and exit with its status."""
    with cli_errors():
        engine = open_engine(load_settings(data_dir))
        record = engine.submit(workdir, command, executed_by=executed_by)
    wait_and_report(engine, record, json_out=json_out)
