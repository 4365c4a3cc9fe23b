# =============================================================================
# core/services/subscription_service.py - Subscription Status
# =============================================================================
# Decides whether a user currently has access to the app.
#
# A user is active when any of these holds, checked in order:
#   1. profile role is admin
#   2. profile has_unlimited_free is set
#   3. the latest completed payment has subscription_period_end in the future
#
# Payments are written by the billing provider's webhooks; this module only
# reads them.
# =============================================================================

import logging
from datetime import datetime
from typing import Any

from supabase import Client, PostgrestAPIError

from core.models.profile import UserRole
from core.models.subscription import SubscriptionStatus
from lib.supabase_client import error_message, is_not_found
from lib.utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Service for subscription checks.

    All methods take the client to query with; pages pass the caller's
    user-scoped client so RLS applies.
    """

    @staticmethod
    def _access_flags(client: Client, user_id: str) -> dict[str, Any]:
        try:
            response = (
                client.table("profiles")
                .select("role, has_unlimited_free")
                .eq("id", user_id)
                .single()
                .execute()
            )
            return response.data or {}
        except PostgrestAPIError as e:
            if not is_not_found(e):
                logger.warning(f"Could not read access flags for {user_id}: {error_message(e)}")
            return {}

    @staticmethod
    def latest_completed_payment(client: Client, user_id: str) -> dict[str, Any] | None:
        """
        Get the newest payment with status 'completed'.

        Returns:
            The payment row, or None if there is none or the query failed
        """
        try:
            response = (
                client.table("payments")
                .select("*")
                .eq("user_id", user_id)
                .eq("status", "completed")
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except PostgrestAPIError as e:
            logger.warning(f"Could not read payments for {user_id}: {error_message(e)}")
            return None
        rows = response.data or []
        return rows[0] if rows else None

    @staticmethod
    def check_subscription_status(
        client: Client,
        user_id: str,
        now: datetime | None = None,
    ) -> SubscriptionStatus:
        """
        Check whether the user has an active subscription.

        Args:
            client: Supabase client to query with
            user_id: The user to check
            now: Reference time (defaults to the current UTC time)

        Returns:
            SubscriptionStatus with is_active and the reason
        """
        now = now or utcnow()
        flags = SubscriptionService._access_flags(client, user_id)

        if flags.get("role") == UserRole.ADMIN.value:
            return SubscriptionStatus(is_active=True, reason="admin")

        if flags.get("has_unlimited_free") is True:
            return SubscriptionStatus(is_active=True, reason="unlimited_free", has_unlimited_free=True)

        payment = SubscriptionService.latest_completed_payment(client, user_id)
        if payment is None:
            return SubscriptionStatus(is_active=False)

        period_end = parse_timestamp(payment.get("subscription_period_end"))
        is_active = period_end is not None and period_end > now

        return SubscriptionStatus(
            is_active=is_active,
            reason="payment" if is_active else "none",
            subscription_period_end=period_end,
            next_payment_date=parse_timestamp(payment.get("next_payment_date")),
            stripe_subscription_id=payment.get("stripe_subscription_id"),
        )
