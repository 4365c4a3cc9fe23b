# =============================================================================
# core/models/subscription.py - Payment & Subscription Schemas
# =============================================================================
# Payments are written by the billing provider's webhooks (out of scope here)
# and read to decide whether a user currently has access.
# =============================================================================

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    """Payment lifecycle as recorded in `payments`."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(BaseModel):
    """Schema for a `payments` row."""
    id: str | None = None
    user_id: str
    amount: float = 0
    currency: str = "EUR"
    status: PaymentStatus
    payment_method: str | None = None
    subscription_period_start: datetime | None = None
    subscription_period_end: datetime | None = None
    next_payment_date: datetime | None = None
    tier_at_payment: str | None = None
    stripe_subscription_id: str | None = None
    created_at: datetime | None = None


class SubscriptionStatus(BaseModel):
    """
    Whether the user currently has access, and why.

    `reason` is one of: admin, unlimited_free, payment, none.
    """
    is_active: bool
    reason: str = Field(default="none")
    has_unlimited_free: bool = False
    subscription_period_end: datetime | None = None
    next_payment_date: datetime | None = None
    stripe_subscription_id: str | None = None
