# =============================================================================
# app/auth/gate.py - Session Gate Middleware
# =============================================================================
# Runs on every HTTP request (WebSockets are not affected):
#
#   1. Bypass prefixes (static files, /api, /ws, docs, favicon) skip the gate.
#   2. Resolve the user from the session cookies, refreshing if needed.
#   3. Signed-in user on /login        -> redirect to /planner
#      "/"                             -> always passes
#      Anonymous user, non-public path -> redirect to /login
#
# Cookie changes from step 2 are written to BOTH the incoming request (so the
# route sees the fresh tokens) and the outgoing response, redirects included.
# Both sides are driven by the same CookieMirror.
# =============================================================================

import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request, cookie_parser
from starlette.responses import RedirectResponse, Response
from starlette.types import Scope

from app.auth.session import CookieMutation

logger = logging.getLogger(__name__)

BYPASS_PREFIXES = (
    "/static",
    "/api",
    "/ws",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
)

PUBLIC_PREFIXES = (
    "/login",
    "/auth/callback",
)

LOGIN_PATH = "/login"
HOME_PATH = "/planner"


def is_bypassed(path: str) -> bool:
    return path.startswith(BYPASS_PREFIXES)


def is_public(path: str) -> bool:
    return path.startswith(PUBLIC_PREFIXES)


class CookieMirror:
    """
    Applies one list of cookie mutations to a request scope and to responses.

    Example:
        mirror = CookieMirror(result.mutations, secure=True)
        mirror.apply_to_request(request.scope)
        response = await call_next(request)
        mirror.apply_to_response(response)
    """

    def __init__(self, mutations: Iterable[CookieMutation], secure: bool = False):
        self.mutations = list(mutations)
        self.secure = secure

    def __bool__(self) -> bool:
        return bool(self.mutations)

    def apply_to_request(self, scope: Scope) -> None:
        """Rewrite the scope's `cookie` header so downstream reads see the changes."""
        if not self.mutations:
            return

        headers = scope.get("headers") or []
        raw = "; ".join(
            value.decode("latin-1") for key, value in headers if key == b"cookie"
        )
        cookies = cookie_parser(raw)
        for mutation in self.mutations:
            if mutation.is_delete:
                cookies.pop(mutation.name, None)
            else:
                cookies[mutation.name] = mutation.value

        rebuilt = [(key, value) for key, value in headers if key != b"cookie"]
        if cookies:
            cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
            rebuilt.append((b"cookie", cookie_header.encode("latin-1")))
        scope["headers"] = rebuilt

    def apply_to_response(self, response: Response) -> Response:
        for mutation in self.mutations:
            if mutation.is_delete:
                response.delete_cookie(
                    mutation.name,
                    path="/",
                    secure=self.secure,
                    httponly=True,
                    samesite="lax",
                )
            else:
                response.set_cookie(
                    mutation.name,
                    mutation.value,
                    max_age=mutation.max_age,
                    path="/",
                    secure=self.secure,
                    httponly=True,
                    samesite="lax",
                )
        return response


class SessionGateMiddleware(BaseHTTPMiddleware):
    """
    Request-level session gate.

    Sets `request.state.user` to the resolved AuthUser (or None) for every
    gated request.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_bypassed(path):
            return await call_next(request)

        services = request.app.state.services
        result = await services.sessions.resolve(request.cookies)
        mirror = CookieMirror(result.mutations, secure=services.settings.is_production)
        mirror.apply_to_request(request.scope)
        request.state.user = result.user

        if result.user is not None and path == LOGIN_PATH:
            response: Response = RedirectResponse(HOME_PATH, status_code=303)
        elif path == "/":
            response = await call_next(request)
        elif result.user is None and not is_public(path):
            logger.debug(f"Anonymous request to {path}; redirecting to {LOGIN_PATH}")
            response = RedirectResponse(LOGIN_PATH, status_code=303)
        else:
            response = await call_next(request)

        return mirror.apply_to_response(response)
