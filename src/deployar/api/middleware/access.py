"""Request logging middleware — request id, timing header, access log.

Every response carries ``X-Request-ID`` (echoed from the request when the
client sent one) and ``X-Process-Time-Ms``.  The id is bound to the
structlog context for the duration of the request, so an
``execution_submitted`` event can be traced back to the HTTP call that
caused it.

Tags:
    deployar, api, middleware, request-id, timing, logging

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from deployar.core.logging import bind_context, get_logger, unbind_context

logger = get_logger("deployar.api.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag, time and log every request/response cycle."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        bind_context(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                elapsed_ms=elapsed_ms,
                username=getattr(request.state, "username", None),
            )
        finally:
            unbind_context("request_id")
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-Ms"] = str(elapsed_ms)
        return response
