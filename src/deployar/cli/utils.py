"""
CLI utility helpers — settings, store factories and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from deployar.auth.store import UserStore
from deployar.catalog.store import CommandCatalog
from deployar.core.errors import DeployarError
from deployar.core.settings import DeployarSettings, get_settings
from deployar.core.storage import SnapshotFile
from deployar.execution.engine import ExecutionEngine
from deployar.execution.models import ExecutionRecord, ExecutionStatus

console = Console()
err_console = Console(stderr=True)

DATA_DIR_OPTION = typer.Option(
    None,
    "--data-dir",
    "-d",
    help="Directory holding the JSON files (default: $DEPLOYAR_DATA_DIR or ~/.deployar).",
)

_STATUS_STYLE = {
    ExecutionStatus.RUNNING: "yellow",
    ExecutionStatus.SUCCESS: "green",
    ExecutionStatus.FAILED: "red",
}


# ── Settings / store helpers ─────────────────────────────────────────────


def load_settings(data_dir: Path | None = None) -> DeployarSettings:
    """Environment settings, with ``--data-dir`` taking precedence."""
    if data_dir is None:
        return get_settings()
    return DeployarSettings(data_dir=data_dir)


def open_engine(settings: DeployarSettings) -> ExecutionEngine:
    return ExecutionEngine.from_settings(settings)


def open_catalog(settings: DeployarSettings) -> CommandCatalog:
    catalog = CommandCatalog(SnapshotFile(settings.commands_path))
    catalog.load()
    return catalog


def open_users(settings: DeployarSettings) -> UserStore:
    users = UserStore(
        SnapshotFile(settings.users_path),
        hash_iterations=settings.password_hash_iterations,
    )
    users.load()
    return users


@contextmanager
def cli_errors() -> Iterator[None]:
    """Print a :class:`DeployarError` to stderr and exit with code 1."""
    try:
        yield
    except DeployarError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {escape(exc.message)}")
        raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {escape(str(v))}", highlight=False)


def _cell(value: Any) -> Text | str:
    if isinstance(value, Text):
        return value
    return "" if value is None else escape(str(value))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table; columns come from the first row."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(_cell(v) for v in row.values()))
    console.print(table)


def execution_row(record: ExecutionRecord) -> dict[str, Any]:
    """Compact, table-friendly view of an execution."""
    style = _STATUS_STYLE.get(record.status, "white")
    return {
        "id": record.id[:8],
        "status": Text(record.status.value, style=style),
        "exit": record.exit_code,
        "name": record.name or record.command,
        "started": record.started_at.strftime("%Y-%m-%d %H:%M:%S"),
        "duration": record.duration,
        "by": record.executed_by,
    }


def exit_code_for(record: ExecutionRecord) -> int:
    """Map a finished execution to a process exit status for ``run`` commands."""
    if record.status is ExecutionStatus.SUCCESS:
        return 0
    if record.exit_code is not None and 0 < record.exit_code < 256:
        return record.exit_code
    return 1
