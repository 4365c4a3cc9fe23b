# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - profile.py: Profile, role, tier and social link schemas
# - task.py: Planner task and inspiration link schemas
# - competitor.py: Competitor tracking schemas
# - credits.py: Monthly AI credit counter
# - subscription.py: Payments and subscription status
# - template.py: CMS-sourced content templates
# - notification.py: Toast-style notifications returned to the UI
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Profile Models - Account, role and tier
# -----------------------------------------------------------------------------
from .profile import (
    Profile,
    ProfileUpdate,
    RoleInfo,
    SocialLink,
    SocialLinkInput,
    UserRole,
    UserTier,
)

# -----------------------------------------------------------------------------
# Task Models - Planner content
# -----------------------------------------------------------------------------
from .task import (
    InspirationLink,
    InspirationLinkCreate,
    PlannerView,
    Task,
    TaskCreate,
    TaskFormat,
    TaskStatus,
    TaskUpdate,
)

# -----------------------------------------------------------------------------
# Competitor Models
# -----------------------------------------------------------------------------
from .competitor import (
    Competitor,
    CompetitorCreate,
    CompetitorUpdate,
)

# -----------------------------------------------------------------------------
# Credits, Subscription & CMS Models
# -----------------------------------------------------------------------------
from .credits import MAX_CREDITS, AICredits
from .subscription import Payment, PaymentStatus, SubscriptionStatus
from .template import SyncReport, Template, TemplateStructure
from .notification import Notification, NotificationLevel

__all__ = [
    # Profile
    "Profile",
    "ProfileUpdate",
    "RoleInfo",
    "SocialLink",
    "SocialLinkInput",
    "UserRole",
    "UserTier",
    # Task
    "InspirationLink",
    "InspirationLinkCreate",
    "PlannerView",
    "Task",
    "TaskCreate",
    "TaskFormat",
    "TaskStatus",
    "TaskUpdate",
    # Competitor
    "Competitor",
    "CompetitorCreate",
    "CompetitorUpdate",
    # Credits
    "MAX_CREDITS",
    "AICredits",
    # Subscription
    "Payment",
    "PaymentStatus",
    "SubscriptionStatus",
    # CMS
    "SyncReport",
    "Template",
    "TemplateStructure",
    # Notifications
    "Notification",
    "NotificationLevel",
]
