# =============================================================================
# core/models/admin.py - Admin User Management Schemas
# =============================================================================

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.models.profile import UserTier


class AdminUserCreate(BaseModel):
    """
    Input for creating a user from the admin dashboard.

    New users get the PRO tier. Without `has_unlimited_free` they also get
    a 7-day trial payment.
    """
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6)
    has_unlimited_free: bool = False
    business_name: str | None = None


class AdminUserUpdate(BaseModel):
    """Profile fields and credentials an admin may change."""
    business_name: str | None = None
    target_audience: str | None = None
    persona: str | None = None
    monthly_goal_short: int | None = Field(default=None, ge=0)
    monthly_goal_long: int | None = Field(default=None, ge=0)
    tier: UserTier | None = None
    has_unlimited_free: bool | None = None
    email: str | None = None
    password: str | None = Field(default=None, min_length=6, repr=False)

    def profile_fields(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True, exclude={"email", "password"})

    def credential_fields(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in (("email", self.email), ("password", self.password))
            if value
        }


class AdminUserDetail(BaseModel):
    """A profile row merged with the auth identity's email state."""
    model_config = ConfigDict(extra="allow")

    id: str
    email: str | None = None
    email_confirmed: bool = False
    email_confirmed_at: datetime | None = None
