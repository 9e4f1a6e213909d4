"""
The deployar web application.

``create_app()`` opens the three JSON stores under ``data_dir``, starts an
execution engine over them, and puts Basic auth in front of every API route.

Manifesto:
    Stores are opened when the app is built, not at startup, so a
    corrupt JSON file fails ``create_app`` loudly and a TestClient works
    without entering the lifespan. Nothing outside this module
    touches ``FastAPI`` directly.

Architecture:
    ::

        create_app(settings)
          ├── app.state.settings / engine / catalog / users
          ├── middleware: CORS → BasicAuth → RequestLogging (outermost)
          ├── exception handlers: DeployarError, RequestValidationError, Exception
          └── routers: /health, <prefix>/auth, /users, /execute, /executions, /commands

Tags:
    deployar, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from deployar.api.middleware.access import RequestLoggingMiddleware
from deployar.api.middleware.auth import BasicAuthMiddleware
from deployar.api.middleware.errors import (
    deployar_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from deployar.auth.store import UserStore
from deployar.catalog.store import CommandCatalog
from deployar.core.errors import DeployarError
from deployar.core.logging import get_logger
from deployar.core.settings import DeployarSettings, get_settings
from deployar.core.storage import SnapshotFile
from deployar.execution.engine import ExecutionEngine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log start-up; on exit stop the engine without waiting for children."""
    log = get_logger("deployar.api")
    settings: DeployarSettings = app.state.settings
    log.info(
        "api_starting",
        version=app.version,
        data_dir=str(settings.data_dir),
        auth_enabled=settings.auth_enabled,
    )

    yield

    # Children keep running; their records stay RUNNING on disk
    app.state.engine.shutdown(wait=False)
    log.info(
        "api_stopping",
        active_executions=app.state.engine.active_count(),
    )


def create_app(
    *,
    settings: DeployarSettings | None = None,
) -> FastAPI:
    """Open the stores and return the configured application.

    Parameters
    ----------
    settings : DeployarSettings | None
        Explicit settings (tests pass a temp ``data_dir``).  Defaults to
        :func:`get_settings`, i.e. the environment.

    Raises
    ------
    StorageError
        One of the JSON files in ``data_dir`` exists but is corrupt.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Middleware and the health router read settings from app.state
    app.state.settings = settings

    # Routers that depend on get_settings see the same object
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Stores & engine ──────────────────────────────────────────────
    users = UserStore(
        SnapshotFile(settings.users_path),
        hash_iterations=settings.password_hash_iterations,
    )
    users.load()
    catalog = CommandCatalog(SnapshotFile(settings.commands_path))
    catalog.load()
    app.state.users = users
    app.state.catalog = catalog
    app.state.engine = ExecutionEngine.from_settings(settings)

    # ── Middleware (last added runs first) ────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        BasicAuthMiddleware,
        prefix=settings.api_prefix,
        enabled=settings.auth_enabled,
    )
    app.add_middleware(RequestLoggingMiddleware)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(DeployarError, deployar_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from deployar.api.routers import auth, commands, executions, health, users as users_router

    prefix = settings.api_prefix

    # Health endpoints at root level (no prefix, no auth)
    app.include_router(health.router)
    app.include_router(auth.router, prefix=prefix, tags=["auth"])
    app.include_router(users_router.router, prefix=prefix, tags=["users"])
    app.include_router(executions.router, prefix=prefix, tags=["executions"])
    app.include_router(commands.router, prefix=prefix, tags=["commands"])

    return app
