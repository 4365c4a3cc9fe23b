# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a Supabase access token.

    This is the minimal user info available from the token itself,
    without querying the database. The token is kept so routes can build a
    user-scoped database client; it is never serialized.
    """
    model_config = ConfigDict(frozen=True)  # Make immutable

    id: UUID
    email: str | None = None
    access_token: str = Field(default="", repr=False, exclude=True)
    user_metadata: dict[str, Any] = Field(default_factory=dict, repr=False, exclude=True)

    @classmethod
    def from_claims(cls, claims: dict[str, Any], access_token: str) -> "AuthUser":
        """Build from decoded JWT claims (`sub`, `email`, `user_metadata`)."""
        return cls(
            id=UUID(claims["sub"]),
            email=claims.get("email"),
            access_token=access_token,
            user_metadata=claims.get("user_metadata") or {},
        )

    @classmethod
    def from_auth_user(cls, user: dict[str, Any], access_token: str) -> "AuthUser":
        """Build from a Supabase Auth `/user` (or token response `user`) payload."""
        return cls(
            id=UUID(user["id"]),
            email=user.get("email"),
            access_token=access_token,
            user_metadata=user.get("user_metadata") or {},
        )


class TokenPayload(BaseModel):
    """
    Decoded JWT token payload from Supabase.

    Supabase tokens include standard JWT claims plus custom claims.
    """
    sub: str  # User ID
    email: str | None = None
    aud: str  # Audience (should be "authenticated")
    exp: int  # Expiration timestamp
    iat: int | None = None  # Issued at timestamp
    role: str | None = None  # Postgres role


class LoginRequest(BaseModel):
    """Email/password sign-in."""
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, repr=False)


class SessionTokens(BaseModel):
    """Token pair returned by Supabase Auth."""
    access_token: str = Field(repr=False)
    refresh_token: str = Field(repr=False)
    expires_in: int | None = None
    user: dict[str, Any] | None = Field(default=None, repr=False)
