# =============================================================================
# lib/supabase_client.py - Supabase Client Container
# =============================================================================
# This module builds the Supabase clients used by the application.
#
# There are two access paths:
# - User-scoped clients: anon key + the caller's access token, so every query
#   runs under the caller's Row Level Security policies.
# - The elevated-privilege (admin) client: service_role key, bypasses RLS.
#   Only admin routes may ask for it.
#
# The container is created once in the app lifespan and passed around
# explicitly (see app/dependencies.py). Nothing here is a module-level
# singleton.
#
# Usage:
#   clients = SupabaseClients(settings)
#   db = clients.for_user(access_token)
#   rows = db.table("tasks").select("*").eq("user_id", user_id).execute().data
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError
from supabase import AuthError, Client, ClientOptions, PostgrestAPIError, create_client

from app.config import Settings

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST code returned by .single() when no row matches
NOT_FOUND_CODE = "PGRST116"

# Failures that data-access code treats as expected (network, database,
# auth provider, bad row shape). Anything else is a programming error.
EXPECTED_ERRORS: tuple[type[BaseException], ...] = (
    PostgrestAPIError,
    AuthError,
    httpx.HTTPError,
    ValidationError,
)


class SupabaseClientError(Exception):
    """
    Error during Supabase client setup or operations.

    Provides actionable error messages: errors should tell HOW to fix,
    not just WHAT failed.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class ServiceKeyMissingError(SupabaseClientError):
    """Raised when the elevated-privilege client is requested without a service key."""

    def __init__(self):
        super().__init__(
            message="SUPABASE_SERVICE_KEY is not set",
            code="SERVICE_KEY_MISSING",
            suggestion="Set SUPABASE_SERVICE_KEY in the environment to enable admin operations",
        )


def is_not_found(exc: BaseException) -> bool:
    """Check whether a PostgREST error means 'no rows' rather than a failure."""
    if getattr(exc, "code", None) == NOT_FOUND_CODE:
        return True
    return NOT_FOUND_CODE in str(exc)


def first_row(response: Any, what: str = "Row") -> dict[str, Any]:
    """
    First row of a write/select response.

    Raises:
        PostgrestAPIError: With the not-found code when nothing came back
            (missing row, or hidden by RLS)
    """
    if not response.data:
        raise PostgrestAPIError({
            "message": f"{what} not found",
            "code": NOT_FOUND_CODE,
            "hint": None,
            "details": None,
        })
    return response.data[0]


def error_message(exc: BaseException) -> str:
    """Extract the human-readable message from a client error."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__


class SupabaseClients:
    """
    Factory and owner of the Supabase clients for one process.

    Example:
        clients = SupabaseClients(settings)
        user_db = clients.for_user(token)      # RLS applies
        admin_db = clients.admin                # raises if no service key
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._admin: Client | None = None

    def _options(self) -> ClientOptions:
        # Server-side clients never persist or refresh sessions themselves;
        # the session gate owns refresh and cookies.
        return ClientOptions(auto_refresh_token=False, persist_session=False)

    def for_user(self, access_token: str | None) -> Client:
        """
        Create a client that acts as the given user.

        Args:
            access_token: The caller's Supabase access token (JWT)

        Returns:
            Client: Anon-key client with the token applied to PostgREST

        Raises:
            SupabaseClientError: If client creation fails
        """
        try:
            client = create_client(
                self._settings.SUPABASE_URL,
                self._settings.SUPABASE_ANON_KEY,
                options=self._options(),
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create Supabase client: {e}",
                code="CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_ANON_KEY in your .env file",
            ) from e

        if access_token:
            client.postgrest.auth(access_token)
        return client

    @property
    def admin(self) -> Client:
        """
        Get the elevated-privilege client, creating it on first use.

        Raises:
            ServiceKeyMissingError: If SUPABASE_SERVICE_KEY is not configured
            SupabaseClientError: If client creation fails
        """
        if self._admin is None:
            if not self._settings.SUPABASE_SERVICE_KEY:
                raise ServiceKeyMissingError()
            try:
                self._admin = create_client(
                    self._settings.SUPABASE_URL,
                    self._settings.SUPABASE_SERVICE_KEY,
                    options=self._options(),
                )
                logger.info("Supabase admin client initialized")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase admin client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file",
                ) from e
        return self._admin

    @property
    def has_admin(self) -> bool:
        """Whether a service key is configured."""
        return bool(self._settings.SUPABASE_SERVICE_KEY)

    def close(self) -> None:
        """Drop the cached admin client."""
        self._admin = None
