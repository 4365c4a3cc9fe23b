# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for data validation
# - tiers.py: Tier policy (limits and capability flags)
# - resources/: Per-user data resources over a Supabase client
# - services/: Subscription, admin, CMS sync and AI assistant logic
#
# Code in this package should NOT import from FastAPI.
# This keeps the logic testable and reusable.
# =============================================================================
