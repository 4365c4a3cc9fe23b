# =============================================================================
# tests/test_session.py - Session Manager Tests
# =============================================================================
# Unit tests for SessionManager: token verification, resolve() outcomes and
# the cookie mutations each one produces. Supabase Auth is replaced with an
# httpx.MockTransport.
#
# Run with: pytest tests/test_session.py -v
# =============================================================================

import asyncio
from uuid import UUID

import httpx
import pytest
from jose import jwt

from app.auth.session import SessionInvalidError, SessionManager, TokenExpiredError
from tests.conftest import USER_ID, make_token

ACCESS = "sb-access-token"
REFRESH = "sb-refresh-token"


def manager(settings, handler):
    return SessionManager(settings, http=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def token_response(access_token: str, refresh_token: str = "refresh-2") -> httpx.Response:
    return httpx.Response(200, json={
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_in": 3600,
        "user": {"id": USER_ID, "email": "user@example.com"},
    })


def fail(request):
    raise AssertionError(f"Unexpected call to {request.url}")


class TestVerifyAccessToken:
    """Tests for verify_access_token."""

    def test_valid_hs256_token(self, settings):
        user = asyncio.run(manager(settings, fail).verify_access_token(make_token()))

        assert user.id == UUID(USER_ID)
        assert user.email == "user@example.com"

    def test_expired_token(self, settings):
        with pytest.raises(TokenExpiredError):
            asyncio.run(manager(settings, fail).verify_access_token(make_token(expires_in=-60)))

    def test_wrong_signature(self, settings):
        token = jwt.encode({"sub": USER_ID, "aud": "authenticated", "exp": 9999999999}, "other", algorithm="HS256")

        with pytest.raises(SessionInvalidError):
            asyncio.run(manager(settings, fail).verify_access_token(token))

    def test_garbage_token(self, settings):
        with pytest.raises(SessionInvalidError):
            asyncio.run(manager(settings, fail).verify_access_token("not-a-jwt"))

    def test_remote_verification_without_secret(self, settings):
        """Test that HS256 tokens are checked against /user when no secret is set."""
        remote_settings = settings.model_copy(update={"SUPABASE_JWT_SECRET": None})

        def handler(request):
            assert request.url.path == "/auth/v1/user"
            return httpx.Response(200, json={"id": USER_ID, "email": "remote@example.com"})

        user = asyncio.run(manager(remote_settings, handler).verify_access_token(make_token()))

        assert user.email == "remote@example.com"


class TestResolve:
    """Tests for resolve()."""

    def test_no_cookies(self, settings):
        result = asyncio.run(manager(settings, fail).resolve({}))

        assert result.user is None
        assert result.mutations == []

    def test_valid_access_token(self, settings):
        result = asyncio.run(manager(settings, fail).resolve({ACCESS: make_token(), REFRESH: "r1"}))

        assert str(result.user.id) == USER_ID
        assert result.mutations == []

    def test_expired_access_is_refreshed(self, settings):
        """Test that an expired access token is replaced using the refresh token."""
        fresh = make_token()
        seen = {}

        def handler(request):
            seen["grant_type"] = request.url.params["grant_type"]
            return token_response(fresh)

        result = asyncio.run(
            manager(settings, handler).resolve({ACCESS: make_token(expires_in=-60), REFRESH: "r1"})
        )

        assert seen["grant_type"] == "refresh_token"
        assert str(result.user.id) == USER_ID
        assert {m.name: m.value for m in result.mutations} == {ACCESS: fresh, REFRESH: "refresh-2"}

    def test_rejected_refresh_clears_cookies(self, settings):
        def handler(request):
            return httpx.Response(400, json={"error_description": "Invalid Refresh Token"})

        result = asyncio.run(
            manager(settings, handler).resolve({ACCESS: make_token(expires_in=-60), REFRESH: "r1"})
        )

        assert result.user is None
        assert {m.name for m in result.mutations} == {ACCESS, REFRESH}
        assert all(m.is_delete for m in result.mutations)

    def test_invalid_access_without_refresh_clears_cookies(self, settings):
        result = asyncio.run(manager(settings, fail).resolve({ACCESS: "not-a-jwt"}))

        assert result.user is None
        assert all(m.is_delete for m in result.mutations)

    def test_auth_outage_leaves_cookies_alone(self, settings):
        """Test that a network failure never logs the user out."""
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        result = asyncio.run(
            manager(settings, handler).resolve({ACCESS: make_token(expires_in=-60), REFRESH: "r1"})
        )

        assert result.user is None
        assert result.mutations == []


class TestSignInAndOut:
    """Tests for sign_in, exchange_code and sign_out."""

    def test_sign_in(self, settings):
        access = make_token()

        def handler(request):
            assert request.url.params["grant_type"] == "password"
            return token_response(access)

        user, mutations = asyncio.run(manager(settings, handler).sign_in("user@example.com", "secret"))

        assert str(user.id) == USER_ID
        assert [m.name for m in mutations] == [ACCESS, REFRESH]

    def test_bad_credentials(self, settings):
        def handler(request):
            return httpx.Response(400, json={"error_description": "Invalid login credentials"})

        with pytest.raises(SessionInvalidError, match="Invalid login credentials"):
            asyncio.run(manager(settings, handler).sign_in("user@example.com", "wrong"))

    def test_exchange_code_clears_verifier(self, settings):
        def handler(request):
            assert request.url.params["grant_type"] == "pkce"
            return token_response(make_token())

        _, mutations = asyncio.run(manager(settings, handler).exchange_code("code-1", "verifier-1"))

        verifier = [m for m in mutations if m.name == settings.AUTH_CODE_VERIFIER_COOKIE]
        assert len(verifier) == 1 and verifier[0].is_delete

    def test_sign_out_revokes_and_clears(self, settings):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(204)

        mutations = asyncio.run(manager(settings, handler).sign_out(make_token()))

        assert calls == ["/auth/v1/logout"]
        assert all(m.is_delete for m in mutations)
