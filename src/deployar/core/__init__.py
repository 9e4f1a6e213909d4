"""Deployar core -- settings, logging, errors and durable snapshot storage.

Manifesto:
    Every other package in deployar needs the same handful of primitives:
    a typed error hierarchy, one way to log, one way to read configuration,
    and one way to write a JSON file without corrupting it.  They live here
    and depend on nothing else in the project.

Architecture::

    errors.py      DeployarError hierarchy (ValidationError, LaunchError, ...)
    logging.py     structlog configuration (configure_logging / get_logger)
    settings.py    DeployarSettings (pydantic-settings, DEPLOYAR_ env prefix)
    storage.py     SnapshotFile -- whole-collection JSON, temp file + rename
    timestamps.py  UTC helpers and human-readable durations

Tags:
    deployar, core, primitives

Doc-Types:
    api-reference
"""

from deployar.core.errors import (
    AuthenticationError,
    ConflictError,
    DeployarError,
    ErrorCategory,
    LaunchError,
    NotFoundError,
    PersistenceError,
    StorageError,
    ValidationError,
)
from deployar.core.storage import SnapshotFile
from deployar.core.timestamps import format_duration, utcnow

__all__ = [
    "AuthenticationError",
    "ConflictError",
    "DeployarError",
    "ErrorCategory",
    "LaunchError",
    "NotFoundError",
    "PersistenceError",
    "SnapshotFile",
    "StorageError",
    "ValidationError",
    "format_duration",
    "utcnow",
]
