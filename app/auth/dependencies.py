# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication.
#
# The user is taken from, in order:
# 1. `request.state.user`, set by the session gate on page routes
# 2. An `Authorization: Bearer <jwt>` header
# 3. The access-token session cookie
#
# Usage:
#   from app.auth import get_current_user, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

import logging

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.models import AuthUser
from app.auth.session import SessionInvalidError
from app.exceptions import AuthUnavailableError, NotAuthenticatedError

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor (cookie sessions are the fallback)
security_optional = HTTPBearer(auto_error=False)


def _request_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials is not None:
        return credentials.credentials
    services = request.app.state.services
    return request.cookies.get(services.settings.AUTH_ACCESS_COOKIE)


async def get_current_user_optional(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security_optional),
) -> AuthUser | None:
    """
    Optionally get the current user.

    Returns None if no token is provided or it is invalid, instead of
    raising an error.

    Raises:
        AuthUnavailableError: If the token can't be verified because
            Supabase Auth is unreachable
    """
    gate_user = getattr(request.state, "user", None)
    if gate_user is not None:
        return gate_user

    token = _request_token(request, credentials)
    if not token:
        return None

    sessions = request.app.state.services.sessions
    try:
        user = await sessions.verify_access_token(token)
    except SessionInvalidError as e:
        logger.warning(f"Token validation failed: {e}")
        return None
    except httpx.HTTPError as e:
        raise AuthUnavailableError(str(e)) from e

    logger.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user(
    user: AuthUser | None = Depends(get_current_user_optional),
) -> AuthUser:
    """
    Require an authenticated user.

    Returns:
        AuthUser: The authenticated user

    Raises:
        NotAuthenticatedError: 401 if no valid session or token is present

    Usage:
        @router.get("/protected")
        async def protected_route(user: AuthUser = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if user is None:
        raise NotAuthenticatedError()
    return user
