# =============================================================================
# tests/test_tiers.py - Tier Policy Tests
# =============================================================================
# Unit tests for core/tiers.py:
# - Every tier has limits; unknown tiers are rejected
# - Task caps, remaining tasks and view capabilities
# - Template / case-study visibility by position
#
# Run with: pytest tests/test_tiers.py -v
# =============================================================================

import pytest

from core.models.profile import UserTier
from core.models.task import PlannerView
from core.tiers import (
    TIER_LIMITS,
    UnknownTierError,
    can_create_task,
    can_use_view,
    can_view_case_study,
    can_view_template,
    get_remaining_tasks,
    get_tier_limits,
)


class TestGetTierLimits:
    """Tests for get_tier_limits."""

    @pytest.mark.parametrize("tier", list(UserTier))
    def test_every_tier_has_limits(self, tier):
        """Test that every tier in the closed set resolves."""
        assert get_tier_limits(tier) is TIER_LIMITS[tier]

    def test_accepts_string_values(self):
        """Test lookup by the stored string value."""
        assert get_tier_limits("pro") == get_tier_limits(UserTier.PRO)

    @pytest.mark.parametrize("tier", ["free", "starter", "", "PRO"])
    def test_unknown_tier_raises(self, tier):
        """Test that tiers outside the closed set are rejected."""
        with pytest.raises(UnknownTierError):
            get_tier_limits(tier)

    def test_none_tier_has_no_access(self):
        limits = get_tier_limits(UserTier.NONE)
        assert limits.max_tasks == 0
        assert limits.max_templates == 0
        assert limits.max_case_studies == 0
        assert not limits.can_use_kanban
        assert not limits.can_use_calendar

    @pytest.mark.parametrize("tier", [UserTier.PRO, UserTier.ADMIN])
    def test_paid_tiers_are_uncapped(self, tier):
        limits = get_tier_limits(tier)
        assert limits.max_tasks is None
        assert limits.max_templates is None
        assert limits.max_case_studies is None
        assert limits.can_use_kanban and limits.can_use_calendar


class TestTaskLimits:
    """Tests for can_create_task and get_remaining_tasks."""

    def test_pro_with_many_tasks_can_create(self):
        """Test that an uncapped tier never hits a task limit."""
        assert can_create_task(UserTier.PRO, 1000) is True

    def test_none_tier_cannot_create(self):
        assert can_create_task(UserTier.NONE, 0) is False

    @pytest.mark.parametrize("tier", list(UserTier))
    def test_can_create_is_monotonic_in_count(self, tier):
        """Test that once creation is refused, more tasks never re-allow it."""
        results = [can_create_task(tier, count) for count in range(0, 50)]
        first_refusal = results.index(False) if False in results else len(results)
        assert all(not allowed for allowed in results[first_refusal:])

    @pytest.mark.parametrize("tier", list(UserTier))
    def test_remaining_is_none_iff_uncapped(self, tier):
        remaining = get_remaining_tasks(tier, 3)
        assert (remaining is None) == (get_tier_limits(tier).max_tasks is None)

    def test_remaining_never_negative(self):
        """Test that remaining tasks clamp at zero past the cap."""
        assert get_remaining_tasks(UserTier.NONE, 0) == 0
        assert get_remaining_tasks(UserTier.NONE, 25) == 0


class TestVisibility:
    """Tests for template / case-study visibility and view capabilities."""

    def test_uncapped_tier_sees_everything(self):
        assert all(can_view_template(UserTier.PRO, i, 100) for i in range(100))
        assert all(can_view_case_study(UserTier.ADMIN, i, 100) for i in range(100))

    def test_none_tier_sees_nothing(self):
        assert not can_view_template(UserTier.NONE, 0, 1)
        assert not can_view_case_study(UserTier.NONE, 0, 1)

    @pytest.mark.parametrize("view", list(PlannerView))
    def test_pro_can_use_every_view(self, view):
        assert can_use_view(UserTier.PRO, view) is True

    @pytest.mark.parametrize("view", list(PlannerView))
    def test_none_tier_cannot_use_views(self, view):
        assert can_use_view(UserTier.NONE, view) is False

    def test_unknown_view_is_refused(self):
        """Test that an unknown view name is never allowed."""
        assert can_use_view(UserTier.PRO, "timeline") is False
