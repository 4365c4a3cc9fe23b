# =============================================================================
# app/auth/session.py - Supabase Session Manager
# =============================================================================
# Resolves the signed-in user from the session cookies and keeps the session
# fresh.
#
# Token verification supports:
# - HS256 (legacy Supabase JWT secret), when SUPABASE_JWT_SECRET is set
# - ES256 (new Supabase JWT signing keys) via JWKS
# - Remote verification against Supabase Auth `/user` otherwise
#
# resolve() never raises for a bad session. It returns the user (or None)
# plus the cookie mutations the caller must apply:
#   - access token expired, refresh succeeded -> set both cookies
#   - refresh token rejected                 -> clear both cookies
#   - Supabase Auth unreachable              -> leave cookies alone
# =============================================================================

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from app.auth.models import AuthUser, SessionTokens, TokenPayload
from app.config import Settings

logger = logging.getLogger(__name__)

JWKS_CACHE_TTL = 3600  # 1 hour

# Session cookies outlive the access token; refresh keeps them valid
COOKIE_MAX_AGE = 60 * 60 * 24 * 400


class SessionInvalidError(Exception):
    """Supabase Auth rejected the token (as opposed to being unreachable)."""


class TokenExpiredError(SessionInvalidError):
    """The access token is well-formed but past its expiry."""


@dataclass(frozen=True)
class CookieMutation:
    """One cookie change. A None value deletes the cookie."""
    name: str
    value: str | None
    max_age: int | None = None

    @property
    def is_delete(self) -> bool:
        return self.value is None


@dataclass
class SessionResult:
    """Outcome of resolving a request's session."""
    user: AuthUser | None = None
    mutations: list[CookieMutation] = field(default_factory=list)


class SessionManager:
    """
    Talks to Supabase Auth (GoTrue) on behalf of the app.

    One instance lives in the ServiceContainer; its HTTP client is closed on
    shutdown.

    Example:
        manager = SessionManager(settings)
        result = await manager.resolve(request.cookies)
        if result.user:
            ...
    """

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None):
        self.settings = settings
        self.access_cookie = settings.AUTH_ACCESS_COOKIE
        self.refresh_cookie = settings.AUTH_REFRESH_COOKIE
        self._http = http or httpx.AsyncClient(timeout=10.0)
        self._jwks: dict[str, Any] = {}
        self._jwks_fetched_at = 0.0

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    @property
    def _headers(self) -> dict[str, str]:
        return {"apikey": self.settings.SUPABASE_ANON_KEY}

    def _bearer(self, token: str) -> dict[str, str]:
        return {**self._headers, "Authorization": f"Bearer {token}"}

    async def _token_grant(self, grant_type: str, body: dict[str, Any]) -> SessionTokens:
        """
        POST /token for a grant type.

        Raises:
            SessionInvalidError: If Supabase Auth rejects the grant (4xx)
            httpx.HTTPError: If Supabase Auth is unreachable or fails (5xx)
        """
        response = await self._http.post(
            f"{self.settings.auth_url}/token",
            params={"grant_type": grant_type},
            json=body,
            headers=self._headers,
        )
        if 400 <= response.status_code < 500:
            raise SessionInvalidError(_auth_error_message(response))
        response.raise_for_status()
        try:
            return SessionTokens.model_validate(response.json())
        except ValidationError as e:
            raise SessionInvalidError(f"Malformed token response: {e}") from e

    # -------------------------------------------------------------------------
    # Token verification
    # -------------------------------------------------------------------------

    async def _fetch_jwks(self) -> dict[str, Any]:
        """Fetch JWKS from Supabase with caching."""
        now = time.time()
        if self._jwks and (now - self._jwks_fetched_at) < JWKS_CACHE_TTL:
            return self._jwks

        try:
            response = await self._http.get(f"{self.settings.auth_url}/.well-known/jwks.json")
            response.raise_for_status()
            self._jwks = response.json()
            self._jwks_fetched_at = now
            logger.debug("Fetched JWKS from Supabase Auth")
        except httpx.HTTPError as e:
            # Keep serving the expired cache if there is one
            logger.warning(f"Failed to fetch JWKS: {e}")
        return self._jwks or {"keys": []}

    async def _signing_key(self, token: str) -> tuple[Any, str] | None:
        """
        Pick the key to verify a token with.

        Returns:
            (key, algorithm), or None when the token can only be checked remotely
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise SessionInvalidError(f"Malformed token: {e}") from e

        alg = header.get("alg", "HS256")
        if alg == "HS256":
            if self.settings.SUPABASE_JWT_SECRET:
                return self.settings.SUPABASE_JWT_SECRET, "HS256"
            return None

        kid = header.get("kid")
        if kid:
            jwks = await self._fetch_jwks()
            for key in jwks.get("keys", []):
                if key.get("kid") == kid:
                    return key, alg

        logger.warning(f"Could not find key for alg={alg}, kid={kid}; verifying remotely")
        return None

    async def _verify_remote(self, token: str) -> AuthUser:
        response = await self._http.get(f"{self.settings.auth_url}/user", headers=self._bearer(token))
        if response.status_code in (401, 403):
            raise SessionInvalidError(_auth_error_message(response))
        response.raise_for_status()
        return AuthUser.from_auth_user(response.json(), token)

    async def verify_access_token(self, token: str) -> AuthUser:
        """
        Verify an access token and return its user.

        Raises:
            TokenExpiredError: If the token signature is valid but it expired
            SessionInvalidError: If the token is invalid
            httpx.HTTPError: If remote verification could not reach Supabase
        """
        key = await self._signing_key(token)
        if key is None:
            return await self._verify_remote(token)

        signing_key, algorithm = key
        try:
            claims = jwt.decode(token, signing_key, algorithms=[algorithm], audience="authenticated")
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise SessionInvalidError(f"Invalid token: {e}") from e

        try:
            TokenPayload.model_validate(claims)
            return AuthUser.from_claims(claims, token)
        except (ValidationError, ValueError) as e:
            raise SessionInvalidError(f"Invalid token claims: {e}") from e

    # -------------------------------------------------------------------------
    # Session operations
    # -------------------------------------------------------------------------

    def _set_session(self, tokens: SessionTokens) -> list[CookieMutation]:
        return [
            CookieMutation(self.access_cookie, tokens.access_token, COOKIE_MAX_AGE),
            CookieMutation(self.refresh_cookie, tokens.refresh_token, COOKIE_MAX_AGE),
        ]

    async def _user_from_tokens(self, tokens: SessionTokens) -> AuthUser:
        if tokens.user:
            return AuthUser.from_auth_user(tokens.user, tokens.access_token)
        return await self.verify_access_token(tokens.access_token)

    def clear_session(self) -> list[CookieMutation]:
        return [
            CookieMutation(self.access_cookie, None),
            CookieMutation(self.refresh_cookie, None),
        ]

    async def resolve(self, cookies: Mapping[str, str]) -> SessionResult:
        """
        Resolve the user from session cookies, refreshing if needed.

        Args:
            cookies: The request's cookies

        Returns:
            SessionResult with the user (or None) and cookie mutations
        """
        access_token = cookies.get(self.access_cookie)
        refresh_token = cookies.get(self.refresh_cookie)

        if not access_token and not refresh_token:
            return SessionResult()

        if access_token:
            try:
                return SessionResult(user=await self.verify_access_token(access_token))
            except TokenExpiredError:
                logger.debug("Access token expired; refreshing session")
            except SessionInvalidError as e:
                logger.info(f"Access token rejected: {e}")
            except httpx.HTTPError as e:
                logger.warning(f"Supabase Auth unreachable during verification: {e}")
                return SessionResult()

        if not refresh_token:
            return SessionResult(mutations=self.clear_session())

        try:
            tokens = await self._token_grant("refresh_token", {"refresh_token": refresh_token})
        except SessionInvalidError as e:
            logger.info(f"Refresh token rejected, clearing session: {e}")
            return SessionResult(mutations=self.clear_session())
        except httpx.HTTPError as e:
            logger.warning(f"Supabase Auth unreachable during refresh: {e}")
            return SessionResult()

        mutations = self._set_session(tokens)
        try:
            user = await self._user_from_tokens(tokens)
        except (SessionInvalidError, httpx.HTTPError) as e:
            logger.warning(f"Refreshed token could not be verified: {e}")
            return SessionResult(mutations=mutations)

        logger.debug(f"Session refreshed for user {user.id}")
        return SessionResult(user=user, mutations=mutations)

    async def sign_in(self, email: str, password: str) -> tuple[AuthUser, list[CookieMutation]]:
        """
        Sign in with email and password.

        Raises:
            SessionInvalidError: If the credentials are rejected
            httpx.HTTPError: If Supabase Auth is unreachable
        """
        tokens = await self._token_grant("password", {"email": email, "password": password})
        user = await self._user_from_tokens(tokens)
        logger.info(f"User signed in: {user.id}")
        return user, self._set_session(tokens)

    async def exchange_code(self, auth_code: str, code_verifier: str | None) -> tuple[AuthUser, list[CookieMutation]]:
        """
        Exchange a PKCE auth code (from an email link) for a session.

        Raises:
            SessionInvalidError: If the code or verifier is rejected
            httpx.HTTPError: If Supabase Auth is unreachable
        """
        tokens = await self._token_grant(
            "pkce",
            {"auth_code": auth_code, "code_verifier": code_verifier or ""},
        )
        user = await self._user_from_tokens(tokens)
        mutations = self._set_session(tokens)
        mutations.append(CookieMutation(self.settings.AUTH_CODE_VERIFIER_COOKIE, None))
        return user, mutations

    async def sign_out(self, access_token: str | None) -> list[CookieMutation]:
        """Revoke the session (best effort) and clear the cookies."""
        if access_token:
            try:
                response = await self._http.post(
                    f"{self.settings.auth_url}/logout",
                    headers=self._bearer(access_token),
                )
                if response.status_code >= 400:
                    logger.info(f"Supabase Auth logout returned {response.status_code}")
            except httpx.HTTPError as e:
                logger.warning(f"Supabase Auth logout failed: {e}")
        return self.clear_session()

    async def close(self) -> None:
        await self._http.aclose()


def _auth_error_message(response: httpx.Response) -> str:
    """Pull the error text out of a Supabase Auth error response."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    return (
        body.get("error_description")
        or body.get("msg")
        or body.get("message")
        or body.get("error")
        or f"HTTP {response.status_code}"
    )
