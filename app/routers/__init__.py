# =============================================================================
# app/routers/ - Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - planner.py: Planner page, tasks and templates
# - profile.py: Profile page and profile API
# - competitors.py: Competitors page and CRUD
# - case_studies.py: Case study page
# - credits.py: AI credits and subscription status
# - assistant.py: AI content assistant
# - admin.py: Admin page, user management and CMS sync
#
# Feature modules expose `router` (JSON API, mounted under /api) and, where
# there is a page, `pages` (page view models, mounted at the root).
#
# Handlers that only talk to Supabase are plain `def`: the client is
# synchronous, so FastAPI runs them in its threadpool.
# =============================================================================

from . import health
from . import planner
from . import profile
from . import competitors
from . import case_studies
from . import credits
from . import assistant
from . import admin

__all__ = [
    "health",
    "planner",
    "profile",
    "competitors",
    "case_studies",
    "credits",
    "assistant",
    "admin",
]
