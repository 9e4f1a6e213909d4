"""
FastAPI dependency injection — shared singletons and per-request values.

Usage in routers::

    from deployar.api.deps import Engine, CurrentUser

    @router.post("/execute")
    def execute(engine: Engine, username: CurrentUser):
        ...

Manifesto:
    Dependency injection keeps routers thin.  The engine and stores are
    built once by ``create_app`` and live on ``app.state``; routers only
    ever receive them through these aliases.

Tags:
    deployar, api, dependency-injection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from deployar.auth.store import UserStore
from deployar.catalog.store import CommandCatalog
from deployar.core.settings import DeployarSettings, get_settings
from deployar.execution.engine import ExecutionEngine


def get_engine(request: Request) -> ExecutionEngine:
    return request.app.state.engine


def get_catalog(request: Request) -> CommandCatalog:
    return request.app.state.catalog


def get_users(request: Request) -> UserStore:
    return request.app.state.users


def get_current_username(request: Request) -> str | None:
    """Username set by the auth middleware; None when auth is disabled."""
    return getattr(request.state, "username", None)


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[DeployarSettings, Depends(get_settings)]
Engine = Annotated[ExecutionEngine, Depends(get_engine)]
Catalog = Annotated[CommandCatalog, Depends(get_catalog)]
Users = Annotated[UserStore, Depends(get_users)]
CurrentUser = Annotated[str | None, Depends(get_current_username)]
