# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Supabase client container and error helpers
# - cms_client.py: Sanity CMS client and Portable Text rendering
# - utils.py: Shared utilities (UUID normalization, month boundaries)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import (
    EXPECTED_ERRORS,
    ServiceKeyMissingError,
    SupabaseClientError,
    SupabaseClients,
)
from lib.cms_client import CMSError, SanityClient
from lib.utils import first_of_next_month, normalize_uuid, utcnow

__all__ = [
    # Supabase
    "SupabaseClients",
    "SupabaseClientError",
    "ServiceKeyMissingError",
    "EXPECTED_ERRORS",
    # CMS
    "SanityClient",
    "CMSError",
    # Utils
    "first_of_next_month",
    "normalize_uuid",
    "utcnow",
]
