# =============================================================================
# app/routers/case_studies.py - Case Study Page
# =============================================================================
# Case studies are tasks flagged `is_admin_case_study`, published by admins
# (usually synced from the CMS) and readable by every subscriber. How many
# a user may open depends on their tier.
# =============================================================================

import logging

from fastapi import APIRouter
from supabase import Client

from app.dependencies import ActiveSubscription, CurrentProfile, UserClient
from core.models.notification import Notification
from core.models.profile import RoleInfo
from core.models.task import Task
from core.resources.tasks import TASK_SELECT
from core.tiers import can_view_case_study
from lib.supabase_client import EXPECTED_ERRORS, error_message

logger = logging.getLogger(__name__)

pages = APIRouter()


def fetch_case_studies(client: Client) -> list[Task]:
    """All admin case studies, newest first."""
    response = (
        client.table("tasks")
        .select(TASK_SELECT)
        .eq("is_admin_case_study", True)
        .order("created_at", desc=True)
        .execute()
    )
    return [Task.model_validate(row) for row in response.data or []]


@pages.get("/casestudy")
def case_studies_page(
    client: UserClient,
    profile: CurrentProfile,
    subscription: ActiveSubscription,
):
    """
    Case study page view model.

    Each case study carries a `locked` flag from the tier's case-study cap.
    A failed load renders an empty list with an error notification.
    """
    notifications: list[Notification] = []
    try:
        case_studies = fetch_case_studies(client)
    except EXPECTED_ERRORS as e:
        logger.warning(f"Failed to load case studies: {error_message(e)}")
        notifications.append(Notification.error("Failed to load case studies", error_message(e)))
        case_studies = []

    visible = len(case_studies)
    return {
        "page": "casestudy",
        "role": RoleInfo.from_profile(profile),
        "case_studies": [
            {
                **case_study.model_dump(mode="json"),
                "locked": not can_view_case_study(profile.tier, index, visible),
            }
            for index, case_study in enumerate(case_studies)
        ],
        "notifications": notifications,
    }
