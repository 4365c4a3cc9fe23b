# =============================================================================
# core/models/task.py - Planner Task Schemas
# =============================================================================
# A task is one planned piece of content moving through the planner stages:
#
#   idea -> ready -> scheduled -> published
#
# Case studies are tasks with `is_admin_case_study = true`; there is no
# separate entity.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """
    Planner stage, one Kanban column each.

    - idea: captured, not yet developed
    - ready: scripted, ready to record
    - scheduled: has a publish date
    - published: live
    """
    IDEA = "idea"
    READY = "ready"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class TaskFormat(str, Enum):
    """Content format: short form (Reels/TikTok) or long form (YouTube/Facebook)."""
    SHORT = "Kratka Forma"
    LONG = "Duga Forma"


class PlannerView(str, Enum):
    """Planner presentations gated by tier."""
    KANBAN = "kanban"
    CALENDAR = "calendar"


class InspirationLink(BaseModel):
    """Reference link attached to a task."""
    id: str
    task_id: str
    link: str
    display_url: str | None = None
    type: str | None = None
    created_at: datetime | None = None


class Task(BaseModel):
    """
    Schema for a `tasks` row with its inspiration links and category.
    """

    id: str
    user_id: str
    title: str
    niche: str
    format: TaskFormat
    status: TaskStatus = TaskStatus.IDEA

    hook: str | None = None
    body: str | None = None
    cta: str | None = None
    publish_date: datetime | None = None
    original_template: str | None = None
    cover_image_url: str | None = None

    # Results, filled in after publishing
    result_views: str | None = None
    result_engagement: str | None = None
    result_conversions: str | None = None
    analysis: str | None = None

    created_by: str | None = None
    is_admin_case_study: bool = False
    category_id: str | None = None
    category: dict[str, Any] | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    inspiration_links: list[InspirationLink] = Field(default_factory=list)

    @field_validator("inspiration_links", mode="before")
    @classmethod
    def _no_links(cls, value: Any) -> Any:
        return value or []

    @field_validator("is_admin_case_study", mode="before")
    @classmethod
    def _falsy_flag(cls, value: Any) -> Any:
        return bool(value)


class TaskCreate(BaseModel):
    """
    Input for creating a task. The owner is always the caller.

    Example:
        {"title": "3 hooks that sell", "niche": "marketing", "format": "Kratka Forma"}
    """
    title: str = Field(..., min_length=1, max_length=500)
    niche: str = Field(..., min_length=1)
    format: TaskFormat
    status: TaskStatus = TaskStatus.IDEA
    hook: str | None = None
    body: str | None = None
    cta: str | None = None
    publish_date: datetime | None = None
    original_template: str | None = None
    cover_image_url: str | None = None
    category_id: str | None = None


class TaskUpdate(BaseModel):
    """Partial task update; only explicitly-set fields are written."""
    title: str | None = Field(default=None, min_length=1, max_length=500)
    niche: str | None = None
    format: TaskFormat | None = None
    status: TaskStatus | None = None
    hook: str | None = None
    body: str | None = None
    cta: str | None = None
    publish_date: datetime | None = None
    original_template: str | None = None
    cover_image_url: str | None = None
    result_views: str | None = None
    result_engagement: str | None = None
    result_conversions: str | None = None
    analysis: str | None = None
    category_id: str | None = None


class InspirationLinkCreate(BaseModel):
    """Input for attaching an inspiration link to a task."""
    link: str = Field(..., min_length=1, max_length=2048)
    display_url: str | None = None
    type: str | None = None
