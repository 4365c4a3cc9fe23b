# =============================================================================
# app/routers/planner.py - Planner Endpoints
# =============================================================================
# The planner page plus the task and template APIs behind it.
#
# GET    /planner                                  -> planner page view model
# GET    /api/tasks                                -> list the caller's tasks
# POST   /api/tasks                                -> create a task (tier-capped)
# PATCH  /api/tasks/{task_id}                      -> update a task
# DELETE /api/tasks/{task_id}                      -> delete a task
# POST   /api/tasks/{task_id}/inspiration-links    -> attach a link
# DELETE /api/tasks/inspiration-links/{link_id}    -> detach a link
# GET    /api/templates                            -> published templates
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from app.dependencies import ActiveSubscription, CurrentProfile, CurrentUser, UserClient
from app.exceptions import ResourceOperationError, TierLimitError, raise_for_result
from core.models.notification import Notification
from core.models.profile import RoleInfo, UserTier
from core.models.task import InspirationLinkCreate, PlannerView, TaskCreate, TaskUpdate
from core.models.template import Template
from core.resources.credits import CreditsResource
from core.resources.tasks import TasksResource
from core.tiers import (
    can_create_task,
    can_use_view,
    can_view_template,
    get_remaining_tasks,
    get_tier_limits,
)
from lib.supabase_client import EXPECTED_ERRORS, error_message

logger = logging.getLogger(__name__)

router = APIRouter()
pages = APIRouter()

VIEW_LABELS = {
    PlannerView.KANBAN: "Kanban",
    PlannerView.CALENDAR: "Calendar",
}


# =============================================================================
# Request Models
# =============================================================================

class TaskCreateRequest(TaskCreate):
    """Task fields plus the inspiration links to attach after creation."""
    inspiration_links: list[InspirationLinkCreate] = Field(default_factory=list)

    def task(self) -> TaskCreate:
        return TaskCreate.model_validate(
            self.model_dump(exclude_unset=True, exclude={"inspiration_links"})
        )


class TaskCreateResponse(BaseModel):
    task: dict[str, Any]
    notifications: list[Notification] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================

def resolve_view(
    tier: UserTier,
    requested: str | None,
) -> tuple[PlannerView | None, list[Notification]]:
    """
    Pick the planner view to render for a tier.

    A requested view the tier can't use (or an unknown name) falls back to
    kanban with a warning. If kanban is not allowed either, no view is
    rendered.

    Returns:
        (view or None, notifications to show)
    """
    notifications: list[Notification] = []
    wanted = requested or PlannerView.KANBAN.value

    if can_use_view(tier, wanted):
        return PlannerView(wanted), notifications

    try:
        label = VIEW_LABELS[PlannerView(wanted)]
    except ValueError:
        label = wanted
    notifications.append(
        Notification.warning(
            "View not available",
            f"The {label} view is not included in your plan.",
        )
    )
    if wanted != PlannerView.KANBAN.value and can_use_view(tier, PlannerView.KANBAN):
        return PlannerView.KANBAN, notifications

    notifications.append(
        Notification.error("Planner locked", "Upgrade your plan to use the planner.")
    )
    return None, notifications


def task_limits(tier: UserTier, current_count: int) -> dict[str, Any]:
    return {
        "max_tasks": get_tier_limits(tier).max_tasks,
        "current_tasks": current_count,
        "can_create_task": can_create_task(tier, current_count),
        "remaining_tasks": get_remaining_tasks(tier, current_count),
    }


def _loaded_tasks(client: Any, user_id: Any) -> TasksResource:
    tasks = TasksResource(client, user_id)
    state = tasks.load()
    if state.error:
        raise ResourceOperationError("load_tasks", state.error)
    return tasks


# =============================================================================
# Page
# =============================================================================

@pages.get("/planner")
def planner_page(
    user: CurrentUser,
    client: UserClient,
    profile: CurrentProfile,
    subscription: ActiveSubscription,
    view: str | None = None,
):
    """
    Planner page view model.

    Loads tasks and credits for the caller and resolves which planner view
    the tier allows. Load failures are reported as notifications.
    """
    notifications: list[Notification] = []

    tasks = TasksResource(client, user.id)
    tasks_state = tasks.load()
    if tasks_state.error:
        notifications.append(Notification.error("Failed to load tasks", tasks_state.error))

    credits = CreditsResource(client, user.id)
    credits_state = credits.load()

    planner_view, view_notes = resolve_view(profile.tier, view)
    notifications.extend(view_notes)

    return {
        "page": "planner",
        "user": user.model_dump(mode="json"),
        "profile": profile.model_dump(mode="json"),
        "role": RoleInfo.from_profile(profile),
        "subscription": subscription,
        "view": planner_view,
        "views": {v.value: can_use_view(profile.tier, v) for v in PlannerView},
        "tasks": [t.model_dump(mode="json") for t in tasks_state.data],
        "credits": credits_state.data,
        "limits": task_limits(profile.tier, tasks.count()),
        "notifications": notifications,
    }


# =============================================================================
# Tasks API
# =============================================================================

@router.get("/tasks")
def list_tasks(user: CurrentUser, client: UserClient):
    """List the caller's tasks, newest first."""
    tasks = _loaded_tasks(client, user.id)
    return {"tasks": tasks.state.data, "count": tasks.count()}


@router.post("/tasks", status_code=201, response_model=TaskCreateResponse)
def create_task(
    body: TaskCreateRequest,
    user: CurrentUser,
    client: UserClient,
    profile: CurrentProfile,
):
    """
    Create a task, then attach its inspiration links.

    Link failures don't undo the task; each is reported as a notification.

    Raises:
        403: If the tier's task cap is reached
        400: If the task can't be written
    """
    tasks = _loaded_tasks(client, user.id)
    current = tasks.count()
    if not can_create_task(profile.tier, current):
        raise TierLimitError(profile.tier.value, "tasks", current=current)

    created = raise_for_result(tasks.create(body.task()), "create_task")

    notifications: list[Notification] = []
    for link in body.inspiration_links:
        result = tasks.add_inspiration_link(created.id, link)
        if result.error:
            notifications.append(Notification.error("Failed to add link", result.error))

    task = next((t for t in tasks.state.data if t.id == created.id), created)
    notifications.append(Notification.success("Idea saved", f'"{task.title}" was added to the planner.'))
    return TaskCreateResponse(task=task.model_dump(mode="json"), notifications=notifications)


@router.patch("/tasks/{task_id}")
def update_task(task_id: str, body: TaskUpdate, user: CurrentUser, client: UserClient):
    """Update the given fields of one task."""
    tasks = TasksResource(client, user.id)
    return raise_for_result(tasks.update(task_id, body), "update_task")


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, user: CurrentUser, client: UserClient):
    tasks = TasksResource(client, user.id)
    return {"deleted": raise_for_result(tasks.delete(task_id), "delete_task")}


@router.post("/tasks/{task_id}/inspiration-links", status_code=201)
def add_inspiration_link(
    task_id: str,
    body: InspirationLinkCreate,
    user: CurrentUser,
    client: UserClient,
):
    tasks = TasksResource(client, user.id)
    return raise_for_result(tasks.add_inspiration_link(task_id, body), "add_inspiration_link")


@router.delete("/tasks/inspiration-links/{link_id}")
def remove_inspiration_link(link_id: str, user: CurrentUser, client: UserClient):
    tasks = TasksResource(client, user.id)
    return {"deleted": raise_for_result(tasks.remove_inspiration_link(link_id), "remove_inspiration_link")}


# =============================================================================
# Templates API
# =============================================================================

@router.get("/templates")
def list_templates(
    client: UserClient,
    profile: CurrentProfile,
    niche: Annotated[str | None, Query(description="Only templates for this niche")] = None,
):
    """
    Published templates, each flagged with whether the tier may open it.

    Raises:
        400: If the templates can't be read
    """
    query = client.table("templates").select("*").eq("is_published", True)
    if niche:
        query = query.eq("niche", niche)

    try:
        rows = query.order("created_at", desc=True).execute().data or []
        templates = [Template.model_validate(row) for row in rows]
    except EXPECTED_ERRORS as e:
        raise ResourceOperationError("load_templates", error_message(e)) from e

    visible = len(templates)
    return {
        "templates": [
            {
                **template.model_dump(mode="json"),
                "locked": not can_view_template(profile.tier, index, visible),
            }
            for index, template in enumerate(templates)
        ],
        "total": visible,
    }
