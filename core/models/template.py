# =============================================================================
# core/models/template.py - Content Template Schemas
# =============================================================================
# Templates are authored in the CMS and synced into `templates`. Users browse
# them (limited by tier) and copy one into a new task.
# =============================================================================

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from core.models.task import TaskFormat


class TemplateStructure(BaseModel):
    """Hook / body / CTA skeleton of a template."""
    hook: str = ""
    body: str = ""
    cta: str = ""


class Template(BaseModel):
    """Schema for a `templates` row."""
    id: str
    created_by: str | None = None
    title: str
    format: TaskFormat
    concept: str = ""
    structure: TemplateStructure = Field(default_factory=TemplateStructure)
    niche: str | None = None
    is_published: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("structure", mode="before")
    @classmethod
    def _empty_structure(cls, value: Any) -> Any:
        return value or {}


class SyncReport(BaseModel):
    """Outcome of a CMS sync run."""
    success: bool
    synced: int = 0
    total: int = 0
    errors: list[str] | None = None
