# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Login, logout and the email-link callback. All three go through the
# SessionManager and write the session cookies on their response.
#
# GET  /login           -> login page view model
# POST /login           -> email/password sign-in
# POST /logout          -> revoke session, clear cookies, redirect to /login
# GET  /auth/callback   -> PKCE code exchange from email links
# =============================================================================

import asyncio
import logging
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

from app.auth.gate import HOME_PATH, LOGIN_PATH, CookieMirror
from app.auth.models import AuthUser, LoginRequest
from app.auth.session import SessionInvalidError
from app.dependencies import ServiceContainer, ServicesDep
from app.exceptions import AuthUnavailableError, NotAuthenticatedError
from lib.supabase_client import EXPECTED_ERRORS, error_message

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _safe_next(next_path: str | None) -> str:
    # Only same-site relative paths
    if next_path and next_path.startswith("/") and not next_path.startswith("//"):
        return next_path
    return "/"


@router.get("/login")
async def login_page(request: Request, error: str | None = None):
    """
    Login page view model.

    Signed-in users never get here; the session gate sends them to /planner.
    """
    return {"page": "login", "error": error}


@router.post("/login")
async def login(body: LoginRequest, services: ServicesDep):
    """
    Sign in with email and password.

    Sets the session cookies and tells the client where to go next.

    Raises:
        401: If the credentials are rejected
        503: If Supabase Auth is unreachable
    """
    try:
        user, mutations = await services.sessions.sign_in(body.email, body.password)
    except SessionInvalidError as e:
        raise NotAuthenticatedError(str(e) or "Invalid login credentials") from e
    except httpx.HTTPError as e:
        raise AuthUnavailableError(str(e)) from e

    response = JSONResponse({"user": user.model_dump(mode="json"), "redirect": HOME_PATH})
    CookieMirror(mutations, secure=services.settings.is_production).apply_to_response(response)
    return response


@router.post("/logout")
async def logout(request: Request, services: ServicesDep):
    """Revoke the session and clear the cookies."""
    access_token = request.cookies.get(services.settings.AUTH_ACCESS_COOKIE)
    mutations = await services.sessions.sign_out(access_token)

    response = RedirectResponse(LOGIN_PATH, status_code=303)
    CookieMirror(mutations, secure=services.settings.is_production).apply_to_response(response)
    return response


def _backfill_business_name(services: ServiceContainer, user: AuthUser) -> None:
    """
    Copy `business_name` from sign-up metadata into an empty profile field.
    """
    business_name = (user.user_metadata or {}).get("business_name")
    if not business_name:
        return

    client = services.supabase.for_user(user.access_token)
    try:
        profile = (
            client.table("profiles")
            .select("business_name")
            .eq("id", str(user.id))
            .single()
            .execute()
        ).data or {}
        if not (profile.get("business_name") or "").strip():
            client.table("profiles").update({"business_name": business_name}).eq("id", str(user.id)).execute()
            logger.info(f"Back-filled business_name for user {user.id}")
    except EXPECTED_ERRORS as e:
        logger.warning(f"Could not back-fill business_name for {user.id}: {error_message(e)}")


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    services: ServicesDep,
    code: str | None = None,
    next: str | None = None,
):
    """
    Finish an email-link sign-in.

    Exchanges the PKCE code for a session, back-fills the business name from
    sign-up metadata and redirects to `next` (default "/"). Failures
    redirect to /login with the error in the query string.
    """
    if not code:
        return RedirectResponse(LOGIN_PATH, status_code=303)

    verifier = request.cookies.get(services.settings.AUTH_CODE_VERIFIER_COOKIE)
    try:
        user, mutations = await services.sessions.exchange_code(code, verifier)
    except (SessionInvalidError, httpx.HTTPError) as e:
        logger.warning(f"Error exchanging code for session: {e}")
        return RedirectResponse(f"{LOGIN_PATH}?error={quote(str(e))}", status_code=303)

    await asyncio.to_thread(_backfill_business_name, services, user)

    response = RedirectResponse(_safe_next(next), status_code=303)
    CookieMirror(mutations, secure=services.settings.is_production).apply_to_response(response)
    return response
