"""
Shared pytest fixtures for deployar tests.

This module provides:
- Isolated settings pointing at a per-test data directory
- Execution store / engine fixtures that shut down cleanly
- A FastAPI test client with the first user already set up

Usage:
    Fixtures are auto-discovered by pytest::

        def test_something(engine):
            rec = engine.submit("/tmp", "true")
"""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from deployar.api.app import create_app
from deployar.auth.passwords import basic_auth_header
from deployar.core.logging import configure_logging
from deployar.core.settings import DeployarSettings, get_settings
from deployar.core.storage import SnapshotFile
from deployar.execution.engine import ExecutionEngine
from deployar.execution.store import ExecutionStore

ADMIN_USER = "admin"
ADMIN_PASSWORD = "s3cret"

# PBKDF2 rounds for every test user
FAST_HASH_ITERATIONS = 1_000

requires_sh = pytest.mark.skipif(
    sys.platform == "win32" or shutil.which("sh") is None,
    reason="needs a POSIX shell",
)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip shell-dependent tests on hosts without ``sh``."""
    for item in items:
        if item.get_closest_marker("posix"):
            item.add_marker(requires_sh)


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """No test sees the developer's DEPLOYAR_* variables or ~/.deployar."""
    for key in list(os.environ):
        if key.startswith("DEPLOYAR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DEPLOYAR_DATA_DIR", str(tmp_path / "env-data"))
    monkeypatch.setenv("DEPLOYAR_PASSWORD_HASH_ITERATIONS", str(FAST_HASH_ITERATIONS))
    get_settings.cache_clear()
    configure_logging(level="WARNING", json_format=False, stream=sys.stderr)
    yield
    get_settings.cache_clear()
    configure_logging(level="WARNING", json_format=False, stream=sys.stderr)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def settings(data_dir: Path) -> DeployarSettings:
    return DeployarSettings(
        data_dir=data_dir,
        password_hash_iterations=FAST_HASH_ITERATIONS,
        log_level="WARNING",
    )


@pytest.fixture
def store(tmp_path: Path) -> ExecutionStore:
    s = ExecutionStore(SnapshotFile(tmp_path / "executions.json"))
    s.load()
    return s


@pytest.fixture
def engine(store: ExecutionStore) -> Generator[ExecutionEngine, None, None]:
    eng = ExecutionEngine(store)
    yield eng
    eng.shutdown(wait=True)


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture
def app(settings: DeployarSettings):
    return create_app(settings=settings)


@pytest.fixture
def raw_client(app) -> Generator[TestClient, None, None]:
    """Client against a server that has no users yet."""
    with TestClient(app) as c:
        yield c
    app.state.engine.shutdown(wait=True)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": basic_auth_header(ADMIN_USER, ADMIN_PASSWORD)}


@pytest.fixture
def client(raw_client: TestClient, auth_headers: dict[str, str]) -> TestClient:
    """Client with the first user created and credentials sent on every request."""
    resp = raw_client.post(
        "/api/auth/setup",
        json={"username": ADMIN_USER, "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 201, resp.text
    raw_client.headers.update(auth_headers)
    return raw_client
