# =============================================================================
# core/models/credits.py - AI Credit Schemas
# =============================================================================
# Each user has a monthly quota of AI-assisted operations. Usage is stored
# per (user, month, year) in `ai_credits`; the remaining count is derived.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, Field

# Monthly quota per user
MAX_CREDITS = 500


class AICredits(BaseModel):
    """
    Credit counter for the current month.

    `credits_remaining` is always `max_credits - credits_used`, so the two
    values sum to the quota. It is not clamped at zero.

    Example:
        {
            "credits_used": 12,
            "credits_remaining": 488,
            "max_credits": 500,
            "reset_at": "2024-02-01T00:00:00+00:00"
        }
    """
    credits_used: int = Field(default=0, ge=0)
    credits_remaining: int = MAX_CREDITS
    max_credits: int = MAX_CREDITS
    reset_at: str = Field(..., description="ISO-8601 first instant of next month (UTC)")

    @classmethod
    def from_usage(cls, credits_used: int, reset_at: datetime) -> "AICredits":
        return cls(
            credits_used=credits_used,
            credits_remaining=MAX_CREDITS - credits_used,
            max_credits=MAX_CREDITS,
            reset_at=reset_at.isoformat(),
        )

    @property
    def has_credits(self) -> bool:
        return self.credits_remaining > 0
