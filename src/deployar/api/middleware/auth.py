"""
HTTP Basic authentication middleware.

Every request under the API prefix must carry ``Authorization: Basic ...``
credentials of an existing user.  Until the first user has been created
through setup, protected routes answer ``401 Setup required``.

Bypass paths (no auth required):
  - ``/health/*``
  - ``<prefix>/auth/setup``, ``<prefix>/auth/login``
  - ``<prefix>/docs``, ``<prefix>/redoc``, ``<prefix>/openapi.json``

Manifesto:
    The server runs arbitrary shell commands as its own user.  Nothing that
    can launch or reveal a command is reachable without credentials.

Tags:
    deployar, api, middleware, authentication, basic-auth

Doc-Types:
    api-reference
"""

from __future__ import annotations

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from deployar.api.middleware.errors import problem_response
from deployar.auth.passwords import parse_basic_auth

REALM_HEADER = {"WWW-Authenticate": 'Basic realm="Deployar"'}

# Exact paths under the prefix that never require authentication
_PUBLIC_SUFFIXES = (
    "/auth/setup",
    "/auth/login",
    "/docs",
    "/docs/oauth2-redirect",
    "/redoc",
    "/openapi.json",
)


def _unauthorized(title: str, *, challenge: bool = True) -> Response:
    return problem_response(
        status=401,
        title=title,
        headers=REALM_HEADER if challenge else None,
    )


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Reject API requests that lack valid Basic credentials.

    On success the username is stored on ``request.state.username``.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    prefix:
        URL prefix of the protected API.
    enabled:
        ``False`` disables enforcement entirely.
    """

    def __init__(self, app: object, prefix: str = "/api", enabled: bool = True) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._prefix = prefix.rstrip("/")
        self._enabled = enabled
        self._public = {f"{self._prefix}{suffix}" for suffix in _PUBLIC_SUFFIXES}

    def _is_bypass(self, path: str) -> bool:
        if not path.startswith(f"{self._prefix}/"):
            return True
        return path.rstrip("/") in self._public

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self._enabled or self._is_bypass(request.url.path):
            return await call_next(request)

        users = request.app.state.users
        if users.needs_setup():
            return _unauthorized("Setup required", challenge=False)

        credentials = parse_basic_auth(request.headers.get("Authorization"))
        if credentials is None:
            return _unauthorized("Authentication required")

        username, password = credentials
        user = await run_in_threadpool(users.authenticate, username, password)
        if user is None:
            return _unauthorized("Invalid credentials")

        request.state.username = user.username
        return await call_next(request)
