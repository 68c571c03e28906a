"""Helpers that turn task, meeting and report events into notifications."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping

from projectflow.domain.entities import (
    NotificationCategory,
    NotificationContent,
    NotificationPriority,
    NotificationType,
)

from .dispatcher import NotificationDispatcher

Builder = Callable[[Mapping[str, Any]], str]

_TASK_TITLES: dict[NotificationType, Builder] = {
    NotificationType.TASK_ASSIGNED: lambda d: f"Task assigned: {d.get('title')}",
    NotificationType.TASK_DUE_SOON: lambda d: f"Task due soon: {d.get('title')}",
    NotificationType.TASK_OVERDUE: lambda d: f"Task overdue: {d.get('title')}",
    NotificationType.TASK_STATUS_CHANGED: lambda d: f"Task status updated: {d.get('title')}",
    NotificationType.TASK_COMMENT_ADDED: lambda d: f"New comment on: {d.get('title')}",
}

_TASK_MESSAGES: dict[NotificationType, Builder] = {
    NotificationType.TASK_ASSIGNED: lambda d: (
        f'You have been assigned to work on "{d.get("title")}" '
        f'in project "{d.get("project_name")}".'
    ),
    NotificationType.TASK_DUE_SOON: lambda d: (
        f'The task "{d.get("title")}" is due on {_format_date(d.get("due_date"))}.'
    ),
    NotificationType.TASK_OVERDUE: lambda d: (
        f'The task "{d.get("title")}" was due on {_format_date(d.get("due_date"))} '
        "and is now overdue."
    ),
    NotificationType.TASK_STATUS_CHANGED: lambda d: (
        f'The status of "{d.get("title")}" has been changed to "{d.get("status")}".'
    ),
    NotificationType.TASK_COMMENT_ADDED: lambda d: (
        f'{d.get("commenter_name")} added a comment to "{d.get("title")}".'
    ),
}

_MEETING_TITLES: dict[NotificationType, Builder] = {
    NotificationType.MEETING_SCHEDULED: lambda d: f"Meeting scheduled: {d.get('title')}",
    NotificationType.MEETING_REMINDER: lambda d: f"Meeting reminder: {d.get('title')}",
    NotificationType.MEETING_CANCELLED: lambda d: f"Meeting cancelled: {d.get('title')}",
    NotificationType.MEETING_UPDATED: lambda d: f"Meeting updated: {d.get('title')}",
    NotificationType.MEETING_STARTING_SOON: lambda d: f"Meeting starting soon: {d.get('title')}",
}

_MEETING_MESSAGES: dict[NotificationType, Builder] = {
    NotificationType.MEETING_SCHEDULED: lambda d: (
        f'You have been invited to "{d.get("title")}" on '
        f'{_format_date(d.get("start_time"))} at {_format_clock(d.get("start_time"))}.'
    ),
    NotificationType.MEETING_REMINDER: lambda d: (
        f'Don\'t forget about "{d.get("title")}" scheduled for '
        f'{_format_date(d.get("start_time"))} at {_format_clock(d.get("start_time"))}.'
    ),
    NotificationType.MEETING_CANCELLED: lambda d: (
        f'The meeting "{d.get("title")}" scheduled for '
        f'{_format_date(d.get("start_time"))} has been cancelled.'
    ),
    NotificationType.MEETING_UPDATED: lambda d: (
        f'The meeting "{d.get("title")}" has been updated. Please check the new details.'
    ),
    NotificationType.MEETING_STARTING_SOON: lambda d: (
        f'"{d.get("title")}" is starting in 15 minutes. Join now: {d.get("meeting_link")}'
    ),
}

_REPORT_TITLES: dict[NotificationType, Builder] = {
    NotificationType.WEEKLY_PLAN_DUE: lambda d: "Weekly plan due tomorrow",
    NotificationType.WEEKLY_PLAN_OVERDUE: lambda d: "Weekly plan overdue",
    NotificationType.WEEKLY_REPORT_DUE: lambda d: "Weekly report due tomorrow",
    NotificationType.WEEKLY_REPORT_OVERDUE: lambda d: "Weekly report overdue",
    NotificationType.REPORT_SUBMISSION_RECEIVED: lambda d: f"{d.get('type')} submitted",
    NotificationType.LOW_COMPLIANCE_ALERT: lambda d: "Low team compliance alert",
}

_REPORT_MESSAGES: dict[NotificationType, Builder] = {
    NotificationType.WEEKLY_PLAN_DUE: lambda d: (
        f"Your weekly plan for the week of {_format_date(d.get('week_start'))} is due "
        "tomorrow. Please submit it by 10:00 AM."
    ),
    NotificationType.WEEKLY_PLAN_OVERDUE: lambda d: (
        f"Your weekly plan for the week of {_format_date(d.get('week_start'))} is overdue. "
        "Please submit it as soon as possible."
    ),
    NotificationType.WEEKLY_REPORT_DUE: lambda d: (
        f"Your weekly report for the week of {_format_date(d.get('week_start'))} is due "
        "tomorrow. Please submit it by 5:00 PM."
    ),
    NotificationType.WEEKLY_REPORT_OVERDUE: lambda d: (
        f"Your weekly report for the week of {_format_date(d.get('week_start'))} is overdue. "
        "Please submit it as soon as possible."
    ),
    NotificationType.REPORT_SUBMISSION_RECEIVED: lambda d: (
        f"{d.get('user_name')} has submitted their {str(d.get('type') or 'report').lower()} "
        f"for the week of {_format_date(d.get('week_start'))}."
    ),
    NotificationType.LOW_COMPLIANCE_ALERT: lambda d: (
        f"Team compliance has dropped to {d.get('compliance_rate')}%. Please follow up with "
        "team members who haven't submitted their reports."
    ),
}


def build_task_content(
    notification_type: NotificationType, task: Mapping[str, Any], *, task_id: str
) -> NotificationContent:
    title = _TASK_TITLES.get(notification_type, lambda d: f"Task update: {d.get('title')}")
    message = _TASK_MESSAGES.get(
        notification_type, lambda d: f'Task "{d.get("title")}" has been updated.'
    )
    return NotificationContent(
        type=notification_type,
        category=NotificationCategory.TASK,
        title=title(task),
        message=message(task),
        priority=_priority_for(notification_type),
        payload=_json_ready(task),
        entity_type="Task",
        entity_id=task_id,
    )


def build_meeting_content(
    notification_type: NotificationType,
    meeting: Mapping[str, Any],
    *,
    meeting_id: str,
    scheduled_for: datetime | None = None,
) -> NotificationContent:
    title = _MEETING_TITLES.get(
        notification_type, lambda d: f"Meeting update: {d.get('title')}"
    )
    message = _MEETING_MESSAGES.get(
        notification_type, lambda d: f'Meeting "{d.get("title")}" has been updated.'
    )
    return NotificationContent(
        type=notification_type,
        category=NotificationCategory.MEETING,
        title=title(meeting),
        message=message(meeting),
        priority=_priority_for(notification_type),
        payload=_json_ready(meeting),
        entity_type="Meeting",
        entity_id=meeting_id,
        scheduled_for=scheduled_for,
    )


def build_report_content(
    notification_type: NotificationType,
    report: Mapping[str, Any],
    *,
    scheduled_for: datetime | None = None,
) -> NotificationContent:
    title = _REPORT_TITLES.get(notification_type, lambda d: "Weekly report update")
    message = _REPORT_MESSAGES.get(
        notification_type, lambda d: "Your weekly report has been updated."
    )
    report_id = report.get("id")
    return NotificationContent(
        type=notification_type,
        category=NotificationCategory.REPORT,
        title=title(report),
        message=message(report),
        priority=_priority_for(notification_type),
        payload=_json_ready(report),
        entity_type="WeeklyReport",
        entity_id=str(report_id) if report_id is not None else None,
        scheduled_for=scheduled_for,
    )


async def notify_task_update(
    dispatcher: NotificationDispatcher,
    *,
    task_id: str,
    notification_type: NotificationType,
    recipient_ids: Iterable[str],
    task: Mapping[str, Any],
    org_id: str,
) -> list[int]:
    """Notify ``recipient_ids`` about a change to a task."""

    content = build_task_content(notification_type, task, task_id=task_id)
    return await dispatcher.create_bulk(recipient_ids, org_id, content)


async def notify_meeting_update(
    dispatcher: NotificationDispatcher,
    *,
    meeting_id: str,
    notification_type: NotificationType,
    recipient_ids: Iterable[str],
    meeting: Mapping[str, Any],
    org_id: str,
    scheduled_for: datetime | None = None,
) -> list[int]:
    """Notify attendees about a meeting, optionally at ``scheduled_for``."""

    content = build_meeting_content(
        notification_type, meeting, meeting_id=meeting_id, scheduled_for=scheduled_for
    )
    return await dispatcher.create_bulk(recipient_ids, org_id, content)


async def notify_report_update(
    dispatcher: NotificationDispatcher,
    *,
    notification_type: NotificationType,
    recipient_ids: Iterable[str],
    report: Mapping[str, Any],
    org_id: str,
    scheduled_for: datetime | None = None,
) -> list[int]:
    content = build_report_content(notification_type, report, scheduled_for=scheduled_for)
    return await dispatcher.create_bulk(recipient_ids, org_id, content)


def _priority_for(notification_type: NotificationType) -> NotificationPriority:
    name = notification_type.value
    if "OVERDUE" in name or "STARTING_SOON" in name:
        return NotificationPriority.HIGH
    return NotificationPriority.MEDIUM


def _coerce_datetime(value: Any) -> datetime | date | None:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def _format_date(value: Any) -> str:
    parsed = _coerce_datetime(value)
    if parsed is None:
        return str(value) if value else "an unknown date"
    return parsed.strftime("%Y-%m-%d")


def _format_clock(value: Any) -> str:
    parsed = _coerce_datetime(value)
    if not isinstance(parsed, datetime):
        return "an unknown time"
    return parsed.strftime("%H:%M")


def _json_ready(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, (datetime, date)) else value
        for key, value in data.items()
    }


__all__ = [
    "build_meeting_content",
    "build_report_content",
    "build_task_content",
    "notify_meeting_update",
    "notify_report_update",
    "notify_task_update",
]
