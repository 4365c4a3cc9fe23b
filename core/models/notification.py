# =============================================================================
# core/models/notification.py - UI Notifications
# =============================================================================
# Page controllers don't render toasts themselves; they return a list of
# notifications for the UI to show.
# =============================================================================

from enum import Enum

from pydantic import BaseModel


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """A single toast-style message."""
    level: NotificationLevel
    title: str
    description: str | None = None

    @classmethod
    def error(cls, title: str, description: str | None = None) -> "Notification":
        return cls(level=NotificationLevel.ERROR, title=title, description=description)

    @classmethod
    def warning(cls, title: str, description: str | None = None) -> "Notification":
        return cls(level=NotificationLevel.WARNING, title=title, description=description)

    @classmethod
    def success(cls, title: str, description: str | None = None) -> "Notification":
        return cls(level=NotificationLevel.SUCCESS, title=title, description=description)
