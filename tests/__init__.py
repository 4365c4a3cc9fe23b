# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Content Planner API:
# - test_tiers.py: Tier limit policy
# - test_resources.py / test_credits.py / test_profile.py: Data resources
# - test_session.py / test_gate.py: Cookie sessions and the session gate
# - test_api.py / test_admin_api.py: Page and API endpoints
# - test_cms.py / test_assistant.py / test_subscription.py: Services
# - test_websocket.py: Live credit updates
#
# Run tests with: pytest
# =============================================================================
