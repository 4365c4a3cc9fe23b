# =============================================================================
# app/routers/credits.py - AI Credit & Subscription Status Endpoints
# =============================================================================
# GET /api/credits               -> this month's AI credit counter
# GET /api/subscription/status   -> whether the caller's subscription is active
#
# Live credit updates are pushed over /ws/credits (see app/websocket).
# =============================================================================

from fastapi import APIRouter

from app.dependencies import CurrentUser, UserClient
from core.models.credits import AICredits
from core.models.subscription import SubscriptionStatus
from core.resources.credits import CreditsResource
from core.services.subscription_service import SubscriptionService

router = APIRouter()


@router.get("/credits", response_model=AICredits)
def get_credits(user: CurrentUser, client: UserClient):
    """
    The caller's AI credits for the current month.

    A month without a credits row reads as 0 used / 500 remaining. A failed
    read falls back to the same zero-usage counter.
    """
    return CreditsResource(client, user.id).load().data


@router.get("/subscription/status", response_model=SubscriptionStatus)
def subscription_status(user: CurrentUser, client: UserClient):
    return SubscriptionService.check_subscription_status(client, str(user.id))
