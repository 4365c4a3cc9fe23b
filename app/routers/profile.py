# =============================================================================
# app/routers/profile.py - Profile Endpoints
# =============================================================================
# GET /profile        -> profile page view model
# GET /api/profile    -> the caller's profile with social links
# PUT /api/profile    -> save profile fields, then reconcile social links
# =============================================================================

import logging

from fastapi import APIRouter

from app.dependencies import ActiveSubscription, CurrentProfile, CurrentUser, UserClient
from app.exceptions import ResourceOperationError
from core.models.notification import Notification
from core.models.profile import ProfileUpdate, RoleInfo
from core.resources.credits import CreditsResource
from core.resources.profile import ProfileResource

logger = logging.getLogger(__name__)

router = APIRouter()
pages = APIRouter()


@pages.get("/profile")
def profile_page(
    user: CurrentUser,
    client: UserClient,
    profile: CurrentProfile,
    subscription: ActiveSubscription,
):
    """Profile page view model: profile, role, credits and subscription."""
    credits = CreditsResource(client, user.id).load()
    return {
        "page": "profile",
        "user": user.model_dump(mode="json"),
        "profile": profile.model_dump(mode="json"),
        "role": RoleInfo.from_profile(profile),
        "subscription": subscription,
        "credits": credits.data,
        "notifications": [],
    }


@router.get("/profile")
def get_profile(profile: CurrentProfile):
    """The caller's profile, created with defaults on first access."""
    return profile


@router.put("/profile")
def update_profile(body: ProfileUpdate, user: CurrentUser, client: UserClient):
    """
    Save the profile form.

    Profile fields are written first. If that fails, a single error
    notification is returned and social links are left alone. Otherwise,
    when `social_links` is present, links are added and removed one by one;
    every failed link gets its own notification and the rest still apply.

    Returns:
        {"profile": ..., "notifications": [...]}

    Raises:
        400: If the profile can't be loaded
    """
    resource = ProfileResource(client, user.id)
    state = resource.load()
    if state.error or state.data is None:
        raise ResourceOperationError("load_profile", state.error or "Profile not found")

    notifications: list[Notification] = []

    result = resource.update(body)
    if result.error:
        notifications.append(Notification.error("Failed to save profile", result.error))
        return {"profile": resource.state.data, "notifications": notifications}

    if body.social_links is not None:
        report = resource.save_social_links(body.social_links)
        notifications.extend(report.notifications())

    notifications.append(Notification.success("Profile saved"))
    logger.info(f"Profile updated for user {user.id}")
    return {"profile": resource.state.data, "notifications": notifications}
