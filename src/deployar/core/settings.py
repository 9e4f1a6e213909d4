"""Deployar settings.

All values can be overridden via environment variables prefixed with
``DEPLOYAR_`` (``DEPLOYAR_PORT=8080``, ``DEPLOYAR_DATA_DIR=/var/lib/deployar``)
or a ``.env`` file in the working directory.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    The defaults run out of the box on a developer laptop; production only
    overrides what differs.

Tags:
    settings, configuration, pydantic, environment, deployar

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from deployar import __version__

EXECUTIONS_FILE = "executions.json"
COMMANDS_FILE = "commands.json"
USERS_FILE = "users.json"


class DeployarSettings(BaseSettings):
    """Settings for the deployar server, engine and CLI.

    Order of precedence (highest → lowest):
        1. Constructor arguments (tests)
        2. Environment variables (``DEPLOYAR_PORT``, etc.)
        3. ``.env`` file
        4. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOYAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3029, description="Bind port")
    debug: bool = Field(default=False, description="Expose exception text in 500 responses")

    # ── Logging ──────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool | None = Field(default=None, description="JSON logs; None = auto (JSON when not a TTY)")

    # ── Storage ──────────────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".deployar",
        description="Directory holding executions.json, commands.json and users.json",
    )

    # ── Execution ────────────────────────────────────────────────────────
    shell: str = Field(default="sh", description="Shell interpreter invoked as `<shell> -c <command>`")
    max_concurrent_executions: int | None = Field(
        default=None,
        ge=1,
        description="None = one thread per execution (unbounded); N = bounded worker pool",
    )

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api", description="URL prefix for all API endpoints")
    api_title: str = Field(default="deployar API", description="OpenAPI title")
    api_version: str = Field(default=__version__, description="OpenAPI version string")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")
    auth_enabled: bool = Field(default=True, description="Require HTTP Basic auth on API routes")
    password_hash_iterations: int = Field(
        default=240_000,
        ge=1,
        description="PBKDF2 rounds for newly stored passwords",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def _expand_data_dir(cls, value: Path) -> Path:
        return value.expanduser()

    # ── Derived paths ────────────────────────────────────────────────────

    @property
    def executions_path(self) -> Path:
        return self.data_dir / EXECUTIONS_FILE

    @property
    def commands_path(self) -> Path:
        return self.data_dir / COMMANDS_FILE

    @property
    def users_path(self) -> Path:
        return self.data_dir / USERS_FILE


@lru_cache(maxsize=1)
def get_settings() -> DeployarSettings:
    """Cached settings — loaded once per process."""
    return DeployarSettings()
