"""
Response envelopes shared by every router.

A 2xx body is ``{"data": ...}``; a 4xx/5xx body is an RFC 7807 problem
document whose ``title`` is the deployar error message, so clients can show
it to the operator as is.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from deployar.core.errors import DeployarError, ValidationError

DataT = TypeVar("DataT")


# ── Errors ───────────────────────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """One offending input, e.g. ``{"code": "VALIDATION", "field": "command"}``."""

    code: str = Field(description="Error category, e.g. 'VALIDATION'")
    message: str
    field: str | None = Field(default=None, description="Request field the error refers to")

    @classmethod
    def from_error(cls, exc: DeployarError) -> ErrorDetail:
        return cls(
            code=exc.category.value,
            message=exc.message,
            field=exc.field if isinstance(exc, ValidationError) else None,
        )


class ProblemDetail(BaseModel):
    """RFC 7807 problem document.

    Status codes by category:
        - ``VALIDATION`` 400: blank command/workdir, bad credentials format,
          setup already completed, deleting the last user
        - ``AUTH`` 401: setup required, missing or wrong credentials
        - ``NOT_FOUND`` 404: unknown execution, command or user
        - ``CONFLICT`` 409: username taken
        - ``STORAGE`` / ``INTERNAL`` 500

    Example:
        {
            "type": "about:blank",
            "title": "Command cannot be empty",
            "status": 400,
            "detail": "",
            "instance": "http://host:3029/api/execute",
            "errors": [{"code": "VALIDATION", "message": "Command cannot be empty", "field": "command"}]
        }
    """

    type: str = "about:blank"
    title: str = Field(description="The error message")
    status: int
    detail: str = ""
    instance: str = Field(default="", description="Request URL")
    errors: list[ErrorDetail] = Field(default_factory=list)


# ── Success ──────────────────────────────────────────────────────────────


class SuccessResponse(BaseModel, Generic[DataT]):
    """``{"data": ...}`` wrapper for every 2xx response."""

    data: DataT
