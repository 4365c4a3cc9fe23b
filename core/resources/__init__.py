# =============================================================================
# core/resources/ - Per-User Data Resources
# =============================================================================
# One resource per entity. Each wraps a user-scoped Supabase client and
# exposes `state` (data, loading, error), `load()` and mutators.
# =============================================================================

from .base import NOT_AUTHENTICATED, MutationResult, Resource, ResourceState
from .credits import CreditsPoller, CreditsResource
from .tasks import TasksResource
from .profile import ProfileResource, SocialLinkChange, SocialLinkReport
from .competitors import CompetitorsResource

__all__ = [
    "NOT_AUTHENTICATED",
    "MutationResult",
    "Resource",
    "ResourceState",
    "CreditsPoller",
    "CreditsResource",
    "TasksResource",
    "ProfileResource",
    "SocialLinkChange",
    "SocialLinkReport",
    "CompetitorsResource",
]
