# =============================================================================
# core/models/competitor.py - Competitor Schemas
# =============================================================================
# A competitor is an external account the user tracks. `url` is the feed
# reference the UI opens.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, Field


class Competitor(BaseModel):
    """Schema for a `competitors` row."""
    id: str
    user_id: str
    name: str
    url: str
    icon: str | None = None
    niche: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CompetitorCreate(BaseModel):
    """Input for tracking a new competitor."""
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)
    icon: str | None = None
    niche: str | None = None


class CompetitorUpdate(BaseModel):
    """Partial competitor update."""
    name: str | None = Field(default=None, min_length=1, max_length=255)
    url: str | None = Field(default=None, min_length=1, max_length=2048)
    icon: str | None = None
    niche: str | None = None
