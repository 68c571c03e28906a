from .notification import (
    CleanupRequest,
    CleanupResponse,
    MarkReadResponse,
    NotificationCreateRequest,
    NotificationCreateResponse,
    NotificationListResponse,
    NotificationMarkReadRequest,
    NotificationPreferenceRead,
    NotificationPreferenceUpdateRequest,
    NotificationRead,
    NotificationStatsRead,
    PaginationRead,
    ProcessScheduledResponse,
    UnreadCountResponse,
)

__all__ = [
    "CleanupRequest",
    "CleanupResponse",
    "MarkReadResponse",
    "NotificationCreateRequest",
    "NotificationCreateResponse",
    "NotificationListResponse",
    "NotificationMarkReadRequest",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdateRequest",
    "NotificationRead",
    "NotificationStatsRead",
    "PaginationRead",
    "ProcessScheduledResponse",
    "UnreadCountResponse",
]
