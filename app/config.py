# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# Settings for Supabase, session cookies, Sanity, OpenAI and the app itself,
# loaded with pydantic-settings.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Supabase URL and anon key are required. Sanity, OpenAI and the service key
# are optional; the features that need them report "not configured".
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # URL and anon key are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,  # ... means required (no default)
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    # Only admin routes need this; requesting the admin client without it
    # raises ServiceKeyMissingError
    SUPABASE_SERVICE_KEY: str | None = Field(
        default=None,
        description="Supabase service_role key (bypasses RLS)"
    )

    # When unset, access tokens are verified remotely against Supabase Auth
    SUPABASE_JWT_SECRET: str | None = Field(
        default=None,
        description="Legacy HS256 JWT secret for local token verification"
    )

    # -------------------------------------------------------------------------
    # Session Cookies
    # -------------------------------------------------------------------------

    AUTH_ACCESS_COOKIE: str = Field(
        default="sb-access-token",
        description="Cookie holding the Supabase access token"
    )

    AUTH_REFRESH_COOKIE: str = Field(
        default="sb-refresh-token",
        description="Cookie holding the Supabase refresh token"
    )

    AUTH_CODE_VERIFIER_COOKIE: str = Field(
        default="sb-code-verifier",
        description="Cookie holding the PKCE code verifier for /auth/callback"
    )

    # -------------------------------------------------------------------------
    # Sanity CMS Configuration
    # -------------------------------------------------------------------------

    SANITY_PROJECT_ID: str = Field(
        default="",
        description="Sanity project ID (templates and case studies)"
    )

    SANITY_DATASET: str = Field(
        default="production",
        description="Sanity dataset name"
    )

    SANITY_API_TOKEN: str | None = Field(
        default=None,
        description="Sanity read token"
    )

    SANITY_API_VERSION: str = Field(
        default="2024-01-01",
        description="Sanity HTTP API version (date string)"
    )

    # -------------------------------------------------------------------------
    # OpenAI / AI Assistant Configuration
    # -------------------------------------------------------------------------

    OPENAI_API_KEY: str | None = Field(
        default=None,
        description="OpenAI API key for the content assistant"
    )

    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Model used by the content assistant"
    )

    ASSISTANT_TEMPERATURE: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="OpenAI temperature for the assistant (higher = more creative)"
    )

    ASSISTANT_MAX_TOKENS: int = Field(
        default=1500,
        ge=1,
        description="Max completion tokens per assistant reply"
    )

    # -------------------------------------------------------------------------
    # AI Credits
    # -------------------------------------------------------------------------

    CREDITS_POLL_INTERVAL_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="How often open credit views re-fetch the counter"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    SITE_URL: str = Field(
        default="http://localhost:3000",
        description="Public site URL used for auth redirect links"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Empty values fall back to defaults
        env_ignore_empty=True,
        # Case-sensitive environment variable names
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def auth_url(self) -> str:
        """Base URL of the Supabase Auth (GoTrue) API."""
        return f"{self.SUPABASE_URL.rstrip('/')}/auth/v1"

    @property
    def auth_redirect_url(self) -> str:
        """Where email links send users back to."""
        return f"{self.SITE_URL.rstrip('/')}/auth/callback"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
