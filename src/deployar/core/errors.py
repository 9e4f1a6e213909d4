"""
Structured error types for deployar.

Every error raised on purpose inside deployar extends :class:`DeployarError`
and carries a category, an optional context dict, and an optional chained
cause.  The HTTP layer turns the category into a status code; the logging
layer turns ``to_dict()`` into key/value pairs.

Manifesto:
    - **Typed hierarchy:** one class per failure the caller can act on
    - **Synchronous vs recorded:** validation fails the caller right away;
      anything that happens after a command is launched is written into the
      execution record instead of being raised
    - **Error chaining:** wrap OS errors with ``cause=`` so tracebacks keep
      the root cause

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        DeployarError                         │
        │             (category, context, cause, to_dict)              │
        ├──────────────────────────────────────────────────────────────┤
        │  ValidationError   LaunchError       StorageError            │
        │  (VALIDATION)      (EXECUTION)       (STORAGE)               │
        │                                          │                   │
        │  NotFoundError     ConflictError     PersistenceError        │
        │  (NOT_FOUND)       (CONFLICT)                                │
        │                                                              │
        │  AuthenticationError (AUTH)                                  │
        └──────────────────────────────────────────────────────────────┘

    A process that starts and exits nonzero is not an error at all: the
    engine records it as ``FAILED`` with the real exit code.

Examples:
    >>> err = ValidationError("command cannot be empty", field="command")
    >>> err.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>
    >>> err.to_dict()["field"]
    'command'

Tags:
    error-handling, exception-hierarchy, deployar

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories used for HTTP mapping and log routing."""

    VALIDATION = "VALIDATION"  # Bad input, never retryable
    NOT_FOUND = "NOT_FOUND"  # Unknown id / username
    CONFLICT = "CONFLICT"  # Operation conflicts with current state
    AUTH = "AUTH"  # Missing or wrong credentials
    EXECUTION = "EXECUTION"  # Child process could not be started
    STORAGE = "STORAGE"  # Disk / file system errors
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


class DeployarError(Exception):
    """
    Base exception for all deployar errors.

    Subclasses set ``default_category``; callers may still override it.

    Examples:
        >>> err = DeployarError("boom")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.with_context(execution_id="abc").context
        {'execution_id': 'abc'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DeployarError:
        """Attach extra metadata (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# INPUT ERRORS
# =============================================================================


class ValidationError(DeployarError):
    """
    Input validation error.

    Raised synchronously, before any side effect.  ``field`` names the
    offending input so the API can point at it.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class NotFoundError(DeployarError):
    """A saved command or user does not exist."""

    default_category = ErrorCategory.NOT_FOUND


class ConflictError(DeployarError):
    """The request conflicts with existing state (duplicate username)."""

    default_category = ErrorCategory.CONFLICT


class AuthenticationError(DeployarError):
    """Credentials are missing or do not match."""

    default_category = ErrorCategory.AUTH


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class LaunchError(DeployarError):
    """The shell process could not be started.

    Never reaches the submitter: the engine catches it and writes a ``FAILED``
    record with exit code ``1`` and an ``Error:`` line in the output.
    """

    default_category = ErrorCategory.EXECUTION


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(DeployarError):
    """A snapshot file could not be read or parsed."""

    default_category = ErrorCategory.STORAGE


class PersistenceError(StorageError):
    """A snapshot could not be written.

    The in-memory state that triggered the write is kept as is, so reads may
    differ from what is on disk until the next successful save.
    """
