"""Public entry points of the notification use cases."""

from .dispatcher import NotificationDispatcher, validate_content
from .events import (
    build_meeting_content,
    build_report_content,
    build_task_content,
    notify_meeting_update,
    notify_report_update,
    notify_task_update,
)
from .preference_resolver import resolve
from .preferences import apply_preference_update, get_preferences, upsert_preferences
from .read_state import MAX_PAGE_SIZE, ReadStateTracker
from .retention import RetentionPolicy, RetentionSweeper
from .service import NotificationService

__all__ = [
    "MAX_PAGE_SIZE",
    "NotificationDispatcher",
    "NotificationService",
    "ReadStateTracker",
    "RetentionPolicy",
    "RetentionSweeper",
    "apply_preference_update",
    "build_meeting_content",
    "build_report_content",
    "build_task_content",
    "get_preferences",
    "notify_meeting_update",
    "notify_report_update",
    "notify_task_update",
    "resolve",
    "upsert_preferences",
    "validate_content",
]
