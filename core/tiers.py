# =============================================================================
# core/tiers.py - Tier Policy
# =============================================================================
# Maps a subscription tier to usage limits and capability flags.
#
# Every function here is pure: no I/O, no state. A cap of None means
# "unlimited". Every UserTier value has an entry in TIER_LIMITS; a value
# outside the enum raises UnknownTierError instead of returning nothing.
#
# Usage:
#   from core.tiers import can_create_task
#
#   if not can_create_task(profile.tier, len(tasks)):
#       raise TierLimitError(...)
# =============================================================================

from dataclasses import dataclass
from typing import Any

from core.models.profile import UserTier
from core.models.task import PlannerView


class UnknownTierError(ValueError):
    """Raised when a tier value is not part of the closed UserTier set."""

    def __init__(self, tier: Any):
        super().__init__(f"Unknown tier: {tier!r}")
        self.tier = tier


@dataclass(frozen=True)
class TierLimits:
    """Limits for one tier. None means no cap."""
    max_tasks: int | None
    max_templates: int | None
    max_case_studies: int | None
    can_use_kanban: bool
    can_use_calendar: bool


TIER_LIMITS: dict[UserTier, TierLimits] = {
    # No tier recorded: nothing is available
    UserTier.NONE: TierLimits(
        max_tasks=0,
        max_templates=0,
        max_case_studies=0,
        can_use_kanban=False,
        can_use_calendar=False,
    ),
    UserTier.PRO: TierLimits(
        max_tasks=None,
        max_templates=None,
        max_case_studies=None,
        can_use_kanban=True,
        can_use_calendar=True,
    ),
    UserTier.ADMIN: TierLimits(
        max_tasks=None,
        max_templates=None,
        max_case_studies=None,
        can_use_kanban=True,
        can_use_calendar=True,
    ),
}


def get_tier_limits(tier: UserTier | str) -> TierLimits:
    """
    Get the limit record for a tier.

    Args:
        tier: A UserTier or its string value

    Returns:
        TierLimits for the tier

    Raises:
        UnknownTierError: If the tier is outside the closed set
    """
    try:
        return TIER_LIMITS[UserTier(tier)]
    except (ValueError, KeyError):
        raise UnknownTierError(tier) from None


def can_create_task(tier: UserTier | str, current_count: int) -> bool:
    """True if the tier has no task cap or the count is below it."""
    cap = get_tier_limits(tier).max_tasks
    if cap is None:
        return True
    return current_count < cap


def get_remaining_tasks(tier: UserTier | str, current_count: int) -> int | None:
    """
    Tasks the user may still create.

    Returns None for uncapped tiers, otherwise a non-negative count.
    """
    cap = get_tier_limits(tier).max_tasks
    if cap is None:
        return None
    return max(0, cap - current_count)


def _within_cap(cap: int | None, index: int, visible: int) -> bool:
    if cap is None:
        return True
    # Both the item position and the total on screen must fit under the cap
    return index < cap and visible <= cap


def can_view_template(tier: UserTier | str, index: int, visible: int) -> bool:
    """Whether the template at `index` may be shown when `visible` are on screen."""
    return _within_cap(get_tier_limits(tier).max_templates, index, visible)


def can_view_case_study(tier: UserTier | str, index: int, visible: int) -> bool:
    """Whether the case study at `index` may be shown when `visible` are on screen."""
    return _within_cap(get_tier_limits(tier).max_case_studies, index, visible)


def can_use_view(tier: UserTier | str, view: PlannerView | str) -> bool:
    """
    Capability flag for a planner view.

    Unknown view names are never allowed.
    """
    limits = get_tier_limits(tier)
    try:
        planner_view = PlannerView(view)
    except ValueError:
        return False
    if planner_view == PlannerView.KANBAN:
        return limits.can_use_kanban
    return limits.can_use_calendar
