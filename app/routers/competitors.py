# =============================================================================
# app/routers/competitors.py - Competitor Endpoints
# =============================================================================
# GET    /competitors                     -> competitors page view model
# GET    /api/competitors                 -> list
# POST   /api/competitors                 -> track a competitor
# PATCH  /api/competitors/{competitor_id} -> update
# DELETE /api/competitors/{competitor_id} -> stop tracking
# =============================================================================

import logging

from fastapi import APIRouter

from app.dependencies import ActiveSubscription, CurrentProfile, CurrentUser, UserClient
from app.exceptions import ResourceOperationError, raise_for_result
from core.models.competitor import CompetitorCreate, CompetitorUpdate
from core.models.notification import Notification
from core.models.profile import RoleInfo
from core.resources.competitors import CompetitorsResource

logger = logging.getLogger(__name__)

router = APIRouter()
pages = APIRouter()


@pages.get("/competitors")
def competitors_page(
    user: CurrentUser,
    client: UserClient,
    profile: CurrentProfile,
    subscription: ActiveSubscription,
):
    competitors = CompetitorsResource(client, user.id)
    state = competitors.load()

    notifications: list[Notification] = []
    if state.error:
        notifications.append(Notification.error("Failed to load competitors", state.error))

    return {
        "page": "competitors",
        "role": RoleInfo.from_profile(profile),
        "competitors": state.data,
        "notifications": notifications,
    }


@router.get("/competitors")
def list_competitors(user: CurrentUser, client: UserClient):
    competitors = CompetitorsResource(client, user.id)
    state = competitors.load()
    if state.error:
        raise ResourceOperationError("load_competitors", state.error)
    return {"competitors": state.data}


@router.post("/competitors", status_code=201)
def create_competitor(body: CompetitorCreate, user: CurrentUser, client: UserClient):
    competitors = CompetitorsResource(client, user.id)
    return raise_for_result(competitors.create(body), "create_competitor")


@router.patch("/competitors/{competitor_id}")
def update_competitor(
    competitor_id: str,
    body: CompetitorUpdate,
    user: CurrentUser,
    client: UserClient,
):
    competitors = CompetitorsResource(client, user.id)
    return raise_for_result(competitors.update(competitor_id, body), "update_competitor")


@router.delete("/competitors/{competitor_id}")
def delete_competitor(competitor_id: str, user: CurrentUser, client: UserClient):
    competitors = CompetitorsResource(client, user.id)
    return {"deleted": raise_for_result(competitors.delete(competitor_id), "delete_competitor")}
