"""
Exception handlers - every failure leaves the API as an RFC 7807 document.

``DeployarError`` subclasses are mapped by category; request-body and query
validation failures become 400 like any other validation error; anything
else is a 500 whose text is only exposed when ``debug`` is on.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from deployar.api.schemas.common import ErrorDetail, ProblemDetail
from deployar.core.errors import DeployarError, ErrorCategory, ValidationError
from deployar.core.logging import get_logger

logger = get_logger(__name__)

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.AUTH: 401,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
}

# Parts of a pydantic error location that name the request section, not the field
_LOCATION_SECTIONS = {"body", "query", "path"}


def status_for_category(category: ErrorCategory) -> int:
    """HTTP status for an error category; unmapped categories are server errors."""
    return CATEGORY_TO_STATUS.get(category, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    errors: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        errors=errors or [],
    )
    return JSONResponse(status_code=status, content=body.model_dump(), headers=headers)


async def deployar_error_handler(request: Request, exc: DeployarError) -> JSONResponse:
    status = status_for_category(exc.category)
    if status >= 500:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
    field_errors = [ErrorDetail.from_error(exc)] if isinstance(exc, ValidationError) and exc.field else None
    return problem_response(
        status=status,
        title=exc.message,
        instance=str(request.url),
        errors=field_errors,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors = [
        ErrorDetail(
            code=ErrorCategory.VALIDATION.value,
            message=err.get("msg", "Invalid value"),
            field=".".join(str(p) for p in err.get("loc", ()) if p not in _LOCATION_SECTIONS) or None,
        )
        for err in exc.errors()
    ]
    return problem_response(
        status=400,
        title="Invalid request body",
        instance=str(request.url),
        errors=field_errors,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, exc_info=exc)
    debug = request.app.state.settings.debug
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
