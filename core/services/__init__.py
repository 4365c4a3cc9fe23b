# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .subscription_service import SubscriptionService
from .admin_service import AdminOperationError, AdminService
from .cms_sync_service import CMSSyncService
from .assistant_service import AssistantError, ContentAssistant

__all__ = [
    "SubscriptionService",
    "AdminService",
    "AdminOperationError",
    "CMSSyncService",
    "AssistantError",
    "ContentAssistant",
]
