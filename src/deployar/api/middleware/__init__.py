"""HTTP middleware: Basic auth, request logging, error mapping."""

from deployar.api.middleware.access import RequestLoggingMiddleware
from deployar.api.middleware.auth import BasicAuthMiddleware

__all__ = ["BasicAuthMiddleware", "RequestLoggingMiddleware"]
