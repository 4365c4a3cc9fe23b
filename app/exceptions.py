# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class PlannerException(Exception):
    """
    Base exception for the Content Planner API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "PLANNER_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Auth Exceptions
# =============================================================================

class NotAuthenticatedError(PlannerException):
    """Raised when an API call has no valid session or bearer token."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            message=message,
            code="NOT_AUTHENTICATED",
            status_code=401,
            suggestion="Sign in again or send a valid Bearer token",
        )


class AuthUnavailableError(PlannerException):
    """Raised when Supabase Auth can't be reached to verify a token."""

    def __init__(self, error: str):
        super().__init__(
            message="Authentication service unavailable",
            code="AUTH_UNAVAILABLE",
            status_code=503,
            suggestion="Try again in a moment",
            details={"error": error},
        )


class ForbiddenError(PlannerException):
    """
    Raised when the caller lacks the required role.

    Renders as `{"error": "Forbidden"}` only, so nothing about the target
    resource leaks to the caller.
    """

    def __init__(self):
        super().__init__(message="Forbidden", code="FORBIDDEN", status_code=403)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class SubscriptionRequiredError(PlannerException):
    """Raised when a page needs an active subscription the user doesn't have."""

    def __init__(self, user_id: str):
        super().__init__(
            message="An active subscription is required",
            code="SUBSCRIPTION_REQUIRED",
            status_code=402,
            suggestion="Start or renew a subscription to continue",
            details={"user_id": user_id},
        )


# =============================================================================
# Tier & Credits Exceptions
# =============================================================================

class TierLimitError(PlannerException):
    """Raised when the caller's tier doesn't allow the requested action."""

    def __init__(self, tier: str, limit: str, current: int | None = None):
        details: dict[str, Any] = {"tier": tier, "limit": limit}
        if current is not None:
            details["current"] = current
        super().__init__(
            message=f"Your plan does not allow more {limit}",
            code="TIER_LIMIT_REACHED",
            status_code=403,
            suggestion="Upgrade your plan to raise this limit",
            details=details,
        )


class InsufficientCreditsError(PlannerException):
    """Raised when an AI request is made with no credits left this month."""

    def __init__(self, remaining: int, reset_at: str):
        super().__init__(
            message="No AI credits left this month",
            code="INSUFFICIENT_CREDITS",
            status_code=402,
            suggestion=f"Credits reset at {reset_at}",
            details={"credits_remaining": remaining, "reset_at": reset_at},
        )


# =============================================================================
# Resource Exceptions
# =============================================================================

class ResourceOperationError(PlannerException):
    """
    Raised when a resource absorbed an expected failure (database, auth
    provider, network) and the route has to report it.
    """

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=error,
            code="OPERATION_FAILED",
            status_code=400,
            details={"operation": operation},
        )


class ConfigurationError(PlannerException):
    """Raised when an optional integration is used without its settings."""

    def __init__(self, message: str, setting: str):
        super().__init__(
            message=message,
            code="NOT_CONFIGURED",
            status_code=500,
            suggestion=f"Set {setting} in the environment",
            details={"setting": setting},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def planner_exception_handler(
    request: Request,
    exc: PlannerException
) -> JSONResponse:
    """
    Convert PlannerException to JSON response.

    Returns structured error with:
    - error: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    errors = jsonable_encoder(exc.errors()) if hasattr(exc, "errors") else str(exc)
    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": errors,
        }
    )


def raise_for_result(result: Any, operation: str) -> Any:
    """
    Unwrap a resource MutationResult.

    Returns:
        The result's data

    Raises:
        ResourceOperationError: If the mutation recorded an error
    """
    if result.error:
        raise ResourceOperationError(operation, result.error)
    return result.data
