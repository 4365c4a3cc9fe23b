# =============================================================================
# tests/test_subscription.py - Subscription Status Tests
# =============================================================================
# Unit tests for SubscriptionService.check_subscription_status:
# admin -> unlimited free -> latest completed payment still in its period.
#
# Run with: pytest tests/test_subscription.py -v
# =============================================================================

from datetime import datetime, timezone

from core.services.subscription_service import SubscriptionService
from tests.conftest import USER_ID, FakeSupabase, not_found, pg_error

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def check(db):
    return SubscriptionService.check_subscription_status(db, USER_ID, now=NOW)


class TestCheckSubscriptionStatus:
    """Tests for check_subscription_status."""

    def test_admin_is_always_active(self):
        """Test that admins skip the payment lookup entirely."""
        db = FakeSupabase().respond("profiles", {"role": "admin", "has_unlimited_free": False})

        status = check(db)

        assert status.is_active
        assert status.reason == "admin"
        assert db.queries_on("payments") == []

    def test_unlimited_free_is_active(self):
        db = FakeSupabase().respond("profiles", {"role": "user", "has_unlimited_free": True})

        status = check(db)

        assert status.is_active
        assert status.reason == "unlimited_free"
        assert status.has_unlimited_free

    def test_payment_in_period(self):
        db = FakeSupabase().respond("profiles", {"role": "user", "has_unlimited_free": False})
        db.respond("payments", [{
            "id": "p1",
            "status": "completed",
            "subscription_period_end": "2024-06-30T00:00:00Z",
            "next_payment_date": "2024-06-30T00:00:00Z",
            "stripe_subscription_id": "sub_123",
        }])

        status = check(db)

        assert status.is_active
        assert status.reason == "payment"
        assert status.stripe_subscription_id == "sub_123"
        query = db.queries_on("payments")[0]
        assert query.filters() == {"user_id": USER_ID, "status": "completed"}
        assert ("limit", (1,), {}) in query.calls

    def test_expired_payment_is_inactive(self):
        db = FakeSupabase().respond("profiles", {"role": "user", "has_unlimited_free": False})
        db.respond("payments", [{"id": "p1", "subscription_period_end": "2024-05-31T23:59:59Z"}])

        status = check(db)

        assert not status.is_active
        assert status.reason == "none"

    def test_no_profile_and_no_payment(self):
        db = FakeSupabase().respond("profiles", not_found())

        assert check(db).is_active is False

    def test_payment_lookup_error_is_inactive(self):
        db = FakeSupabase().respond("profiles", {"role": "user"})
        db.respond("payments", pg_error("boom"))

        assert check(db).is_active is False
