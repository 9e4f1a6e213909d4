"""
CLI: ``deployar serve`` — start the API server.
"""

from __future__ import annotations

import os
from pathlib import Path

import typer
import uvicorn

from deployar.cli.utils import DATA_DIR_OPTION, console
from deployar.core.logging import configure_logging
from deployar.core.settings import get_settings


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address [default: settings]"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port [default: settings]"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    data_dir: Path | None = DATA_DIR_OPTION,
) -> None:
    """Start the deployar REST API server."""
    if data_dir is not None:
        # The app factory reads settings from the environment
        os.environ["DEPLOYAR_DATA_DIR"] = str(data_dir)
        get_settings.cache_clear()
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    host = host or settings.host
    port = port or settings.port
    console.print(f"[bold green]Starting deployar API[/bold green] on {host}:{port}")
    console.print(f"[dim]data dir: {settings.data_dir}[/dim]", highlight=False)
    uvicorn.run(
        "deployar.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
