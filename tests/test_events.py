"""Tests for the task, meeting and report notification helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from projectflow.application.use_cases.notifications import (
    NotificationDispatcher,
    build_meeting_content,
    build_report_content,
    build_task_content,
    notify_meeting_update,
    notify_task_update,
)
from projectflow.domain.entities import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


def test_task_overdue_content_is_high_priority():
    content = build_task_content(
        NotificationType.TASK_OVERDUE,
        {"title": "Ship release", "due_date": "2025-03-10T17:00:00Z"},
        task_id="t-1",
    )

    assert content.title == "Task overdue: Ship release"
    assert content.message == 'The task "Ship release" was due on 2025-03-10 and is now overdue.'
    assert content.priority is NotificationPriority.HIGH
    assert content.category is NotificationCategory.TASK
    assert (content.entity_type, content.entity_id) == ("Task", "t-1")


def test_unknown_task_type_uses_generic_wording():
    content = build_task_content(NotificationType.TASK_MENTION, {"title": "Docs"}, task_id="t-2")

    assert content.title == "Task update: Docs"
    assert content.message == 'Task "Docs" has been updated.'
    assert content.priority is NotificationPriority.MEDIUM


def test_meeting_starting_soon_is_high_priority():
    start = datetime(2025, 3, 12, 9, 30, tzinfo=timezone.utc)
    content = build_meeting_content(
        NotificationType.MEETING_STARTING_SOON,
        {"title": "Standup", "start_time": start, "meeting_link": "https://meet.example/abc"},
        meeting_id="m-1",
    )

    assert content.priority is NotificationPriority.HIGH
    assert content.message == '"Standup" is starting in 15 minutes. Join now: https://meet.example/abc'
    assert content.payload["start_time"] == start.isoformat()


def test_meeting_scheduled_message_includes_date_and_time():
    content = build_meeting_content(
        NotificationType.MEETING_SCHEDULED,
        {"title": "Retro", "start_time": "2025-03-14T15:00:00"},
        meeting_id="m-2",
    )

    assert content.message == 'You have been invited to "Retro" on 2025-03-14 at 15:00.'
    assert content.priority is NotificationPriority.MEDIUM


def test_report_submission_content():
    content = build_report_content(
        NotificationType.REPORT_SUBMISSION_RECEIVED,
        {"id": 12, "type": "Report", "user_name": "Grace", "week_start": "2025-03-10"},
    )

    assert content.title == "Report submitted"
    assert content.message == "Grace has submitted their report for the week of 2025-03-10."
    assert content.entity_id == "12"
    assert content.category is NotificationCategory.REPORT


def test_weekly_report_overdue_is_high_priority():
    content = build_report_content(NotificationType.WEEKLY_REPORT_OVERDUE, {"week_start": "2025-03-03"})

    assert content.priority is NotificationPriority.HIGH
    assert content.title == "Weekly report overdue"


@pytest.mark.anyio
async def test_notify_task_update_fans_out(store, senders, clock):
    dispatcher = NotificationDispatcher(store, senders.values(), clock=clock)

    ids = await notify_task_update(
        dispatcher,
        task_id="t-1",
        notification_type=NotificationType.TASK_ASSIGNED,
        recipient_ids=["u1", "u2"],
        task={"title": "Ship release", "project_name": "Apollo"},
        org_id="org-1",
    )

    assert len(ids) == 2
    stored = await store.get_notification(ids[0])
    assert stored.title == "Task assigned: Ship release"
    assert stored.payload == {"title": "Ship release", "project_name": "Apollo"}


@pytest.mark.anyio
async def test_notify_meeting_update_can_be_scheduled(store, senders, clock):
    dispatcher = NotificationDispatcher(store, senders.values(), clock=clock)

    ids = await notify_meeting_update(
        dispatcher,
        meeting_id="m-1",
        notification_type=NotificationType.MEETING_REMINDER,
        recipient_ids=["u1"],
        meeting={"title": "Planning", "start_time": clock.now + timedelta(days=1)},
        org_id="org-1",
        scheduled_for=clock.now + timedelta(hours=23),
    )

    stored = await store.get_notification(ids[0])
    assert stored.delivered_at is None
    assert not senders[NotificationChannel.APP].sent
