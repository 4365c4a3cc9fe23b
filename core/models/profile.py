# =============================================================================
# core/models/profile.py - Profile, Role & Tier Schemas
# =============================================================================
# These models describe the user's profile row and its social links:
# - UserRole: admin vs regular user (drives admin-only routes)
# - UserTier: subscription tier, including the explicit NONE variant
# - Profile: the `profiles` row plus nested `social_links`
# - ProfileUpdate: fields a user may change on their own profile
#
# The tier is a closed set. A missing tier is UserTier.NONE (no access),
# never an implicit falsy check. Unknown stored values fail validation.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class UserRole(str, Enum):
    """
    Role stored on the profile.

    - admin: may use the admin dashboard and admin API
    - user: regular account
    """
    ADMIN = "admin"
    USER = "user"


class UserTier(str, Enum):
    """
    Subscription tier.

    - none: no tier recorded; dependent views treat this as "no access"
    - pro: paying (or trial / unlimited-free) customer
    - admin: staff account
    """
    NONE = "none"
    PRO = "pro"
    ADMIN = "admin"


class SocialLink(BaseModel):
    """A user-attached external profile URL."""
    id: str
    profile_id: str | None = None
    url: str
    created_at: datetime | None = None


class SocialLinkInput(BaseModel):
    """
    Social link as submitted by the profile form.

    Links without an id are new; links with an id must already exist.
    """
    id: str | None = None
    url: str = Field(..., min_length=1, max_length=2048)


class Profile(BaseModel):
    """
    Schema for a `profiles` row with its social links.

    Example:
        {
            "id": "550e8400-e29b-41d4-a716-446655440000",
            "business_name": "Acme Fitness",
            "role": "user",
            "tier": "pro",
            "social_links": [{"id": "...", "url": "https://instagram.com/acme"}]
        }
    """

    id: str = Field(..., description="Profile ID (same as the auth user ID)")

    business_name: str | None = None
    business_category: str | None = None
    target_audience: str | None = None
    persona: str | None = None
    monthly_goal_short: int | None = None
    monthly_goal_long: int | None = None

    role: UserRole = Field(default=UserRole.USER, description="Account role")
    tier: UserTier = Field(default=UserTier.NONE, description="Subscription tier")
    has_unlimited_free: bool = Field(
        default=False,
        description="Granted free access by an admin (no payment required)"
    )

    created_at: datetime | None = None
    updated_at: datetime | None = None

    social_links: list[SocialLink] = Field(default_factory=list)

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, value: Any) -> Any:
        return UserRole.USER if value is None else value

    @field_validator("tier", mode="before")
    @classmethod
    def _explicit_no_tier(cls, value: Any) -> Any:
        return UserTier.NONE if value in (None, "") else value

    @field_validator("has_unlimited_free", mode="before")
    @classmethod
    def _falsy_unlimited(cls, value: Any) -> Any:
        return bool(value)

    @field_validator("social_links", mode="before")
    @classmethod
    def _no_links(cls, value: Any) -> Any:
        return value or []

    @property
    def is_admin(self) -> bool:
        """Admins by role or by tier."""
        return self.role == UserRole.ADMIN or self.tier == UserTier.ADMIN


class ProfileUpdate(BaseModel):
    """
    Fields a user may change on their own profile.

    Role, tier and the unlimited-free flag are admin-managed and are not
    accepted here. `social_links`, when present, is the complete desired list.
    """
    business_name: str | None = Field(default=None, max_length=255)
    business_category: str | None = Field(default=None, max_length=100)
    target_audience: str | None = None
    persona: str | None = None
    monthly_goal_short: int | None = Field(default=None, ge=0)
    monthly_goal_long: int | None = Field(default=None, ge=0)
    social_links: list[SocialLinkInput] | None = None

    def profile_fields(self) -> dict[str, Any]:
        """Explicitly-set profile columns, without social links."""
        return self.model_dump(exclude_unset=True, exclude={"social_links"})


class RoleInfo(BaseModel):
    """Role and tier summary used by page controllers."""
    role: UserRole
    tier: UserTier
    is_admin: bool
    is_pro: bool

    @classmethod
    def from_profile(cls, profile: Profile | None) -> "RoleInfo | None":
        if profile is None:
            return None
        return cls(
            role=profile.role,
            tier=profile.tier,
            is_admin=profile.is_admin,
            is_pro=profile.tier == UserTier.PRO,
        )
