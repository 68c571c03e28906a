"""Tests for notification creation, fan-out and scheduled delivery."""

from __future__ import annotations

import time as clock_time
from dataclasses import replace
from datetime import time, timedelta

import anyio
import pytest

from projectflow.application.use_cases.notifications import NotificationDispatcher
from projectflow.domain.entities import (
    ChannelSwitches,
    NotificationCategory,
    NotificationChannel,
    NotificationContent,
    NotificationPriority,
    NotificationType,
    QuietHours,
    RecipientContact,
)
from projectflow.domain.errors import TransientStoreError, ValidationError
from projectflow.infrastructure.channels import DeliveryOutcome, EmailSender
from projectflow.infrastructure.channels import email as email_module
from projectflow.infrastructure.store import NotificationStore

pytestmark = pytest.mark.anyio


def _content(**changes) -> NotificationContent:
    content = NotificationContent(
        type=NotificationType.TASK_ASSIGNED,
        category=NotificationCategory.TASK,
        title="Task assigned: Ship release",
        message='You have been assigned to work on "Ship release".',
        entity_type="Task",
        entity_id="task-1",
    )
    return replace(content, **changes)


@pytest.fixture
def dispatcher(store, senders, clock) -> NotificationDispatcher:
    return NotificationDispatcher(store, senders.values(), clock=clock, send_timeout=0.5)


async def test_create_persists_and_delivers_on_every_enabled_channel(dispatcher, store, senders, clock):
    notification_id = await dispatcher.create("u1", "org-1", _content())

    stored = await store.get_notification(notification_id)
    assert stored.recipient_id == "u1"
    assert stored.delivered_via_app is True
    assert stored.delivered_via_email is True
    assert stored.delivered_via_push is True
    assert stored.delivered_at is not None
    assert stored.delivery_attempted_at is not None
    assert stored.delivery_error is None
    assert stored.is_read is False
    for sender in senders.values():
        assert [n.id for n in sender.sent] == [notification_id]


async def test_create_rejects_empty_title(dispatcher, store):
    with pytest.raises(ValidationError):
        await dispatcher.create("u1", "org-1", _content(title="   "))

    assert await store.count_unread("u1") == 0


async def test_create_rejects_unknown_category(dispatcher):
    with pytest.raises(ValidationError):
        await dispatcher.create("u1", "org-1", _content(category="billing"))


async def test_send_now_false_leaves_record_pending(dispatcher, store, senders):
    notification_id = await dispatcher.create("u1", "org-1", _content(), send_now=False)

    stored = await store.get_notification(notification_id)
    assert stored.is_pending
    assert stored.delivered_at is None
    assert all(not sender.sent for sender in senders.values())


async def test_silent_decision_is_resolved_without_delivery(dispatcher, store, senders):
    preference = await store.get_or_create_preference("u1", "org-1")
    await store.save_preference(
        replace(preference, channels=ChannelSwitches(app=False, email=False, push=False))
    )

    notification_id = await dispatcher.create("u1", "org-1", _content())

    stored = await store.get_notification(notification_id)
    assert stored.delivered_at is None
    assert stored.delivery_attempted_at is not None
    assert not (stored.delivered_via_app or stored.delivered_via_email or stored.delivered_via_push)
    assert all(not sender.sent for sender in senders.values())
    # Silent records are not picked up again by the sweep.
    assert await dispatcher.process_scheduled() == 0


async def test_quiet_hours_suppress_app_and_email_but_not_critical(dispatcher, store, clock, senders):
    preference = await store.get_or_create_preference("u1", "org-1")
    await store.save_preference(
        replace(preference, quiet_hours=QuietHours(enabled=True, start=time(22), end=time(8)))
    )
    clock.now = clock.now.replace(hour=23, minute=59)

    normal_id = await dispatcher.create("u1", "org-1", _content())
    critical_id = await dispatcher.create(
        "u1", "org-1", _content(priority=NotificationPriority.CRITICAL)
    )

    normal = await store.get_notification(normal_id)
    critical = await store.get_notification(critical_id)
    assert (normal.delivered_via_app, normal.delivered_via_email, normal.delivered_via_push) == (
        False,
        False,
        True,
    )
    assert (critical.delivered_via_app, critical.delivered_via_email) == (True, True)


async def test_create_bulk_creates_one_notification_per_recipient(dispatcher, store, senders):
    ids = await dispatcher.create_bulk(["u1", "u2", "u3"], "org-1", _content())

    assert len(ids) == 3
    assert len(set(ids)) == 3
    recipients = set()
    for notification_id in ids:
        stored = await store.get_notification(notification_id)
        recipients.add(stored.recipient_id)
        assert stored.delivered_at is not None
    assert recipients == {"u1", "u2", "u3"}
    assert len(senders[NotificationChannel.APP].sent) == 3


async def test_create_bulk_collapses_duplicate_recipients(dispatcher):
    ids = await dispatcher.create_bulk(["u1", "u1", "u2"], "org-1", _content())

    assert len(ids) == 2


async def test_create_bulk_rejects_empty_recipient_set(dispatcher):
    with pytest.raises(ValidationError):
        await dispatcher.create_bulk([], "org-1", _content())


async def test_failing_recipient_does_not_block_the_others(session_factory, senders, clock):
    class FlakyStore(NotificationStore):
        async def create_notification(self, notification, **kwargs):
            if notification.recipient_id == "broken":
                raise TransientStoreError("database went away")
            return await super().create_notification(notification, **kwargs)

    store = FlakyStore(session_factory)
    dispatcher = NotificationDispatcher(store, senders.values(), clock=clock)

    ids = await dispatcher.create_bulk(["u1", "broken", "u2"], "org-1", _content())

    assert len(ids) == 2
    owners = {(await store.get_notification(notification_id)).recipient_id for notification_id in ids}
    assert owners == {"u1", "u2"}


async def test_timed_out_sender_is_recorded_as_failed(store, clock, sender_factory):
    hanging_email = sender_factory(NotificationChannel.EMAIL, mode="hang")
    dispatcher = NotificationDispatcher(
        store,
        [
            sender_factory(NotificationChannel.APP),
            hanging_email,
            sender_factory(NotificationChannel.PUSH),
        ],
        clock=clock,
        send_timeout=0.05,
    )

    notification_id = await dispatcher.create("u1", "org-1", _content())

    stored = await store.get_notification(notification_id)
    assert stored.delivered_via_app is True
    assert stored.delivered_via_email is False
    assert stored.delivered_via_push is True
    assert stored.delivered_at is not None
    assert "email: timed out" in stored.delivery_error


@pytest.mark.parametrize("mode", ["fail", "raise"])
async def test_sender_failure_never_fails_creation(store, clock, sender_factory, mode):
    dispatcher = NotificationDispatcher(
        store,
        [
            sender_factory(NotificationChannel.APP),
            sender_factory(NotificationChannel.EMAIL),
            sender_factory(NotificationChannel.PUSH, mode=mode),
        ],
        clock=clock,
    )

    notification_id = await dispatcher.create("u1", "org-1", _content())

    stored = await store.get_notification(notification_id)
    assert stored.delivered_via_push is False
    assert stored.delivered_via_app is True
    assert stored.delivery_error.startswith("push:")


async def test_channel_without_sender_is_skipped(store, clock, sender_factory):
    dispatcher = NotificationDispatcher(
        store, [sender_factory(NotificationChannel.APP)], clock=clock
    )

    notification_id = await dispatcher.create("u1", "org-1", _content())

    stored = await store.get_notification(notification_id)
    assert stored.delivered_via_app is True
    assert stored.delivered_via_email is False
    assert stored.delivered_via_push is False
    assert stored.delivered_at is not None
    assert stored.delivery_error is None


async def test_scheduled_notification_waits_for_the_sweep(dispatcher, store, senders, clock):
    due = clock.now + timedelta(hours=2)
    notification_id = await dispatcher.create("u1", "org-1", _content(scheduled_for=due))

    stored = await store.get_notification(notification_id)
    assert stored.delivered_at is None
    assert not senders[NotificationChannel.APP].sent

    assert await dispatcher.process_scheduled(now=clock.now + timedelta(hours=1)) == 0
    assert (await store.get_notification(notification_id)).delivered_at is None

    clock.now = due + timedelta(minutes=1)
    assert await dispatcher.process_scheduled() == 1

    delivered = await store.get_notification(notification_id)
    assert delivered.delivered_at is not None
    assert delivered.delivered_via_app is True
    assert [n.id for n in senders[NotificationChannel.APP].sent] == [notification_id]

    # A second sweep does not deliver it again.
    assert await dispatcher.process_scheduled() == 0


async def test_sweep_recovers_records_left_pending(dispatcher, store, senders):
    first = await dispatcher.create("u1", "org-1", _content(), send_now=False)
    second = await dispatcher.create("u2", "org-1", _content(), send_now=False)

    assert await dispatcher.process_scheduled(batch_size=1) == 1
    assert await dispatcher.process_scheduled(batch_size=10) == 1

    for notification_id in (first, second):
        assert (await store.get_notification(notification_id)).delivered_at is not None


async def test_deleting_a_scheduled_notification_cancels_it(dispatcher, store, senders, clock):
    notification_id = await dispatcher.create(
        "u1", "org-1", _content(scheduled_for=clock.now + timedelta(minutes=5))
    )
    await store.delete_notification(notification_id)

    clock.now = clock.now + timedelta(hours=1)
    assert await dispatcher.process_scheduled() == 0
    assert not senders[NotificationChannel.APP].sent


async def test_blocking_email_transport_is_bounded_by_the_send_timeout(
    store, clock, sender_factory, monkeypatch
):
    def slow_send_email(*args, **kwargs):
        clock_time.sleep(0.5)
        return None

    monkeypatch.setattr(email_module, "send_email", slow_send_email)
    await store.save_contact(
        RecipientContact(user_id="u1", org_id="org-1", name="Ada", email="ada@example.com")
    )
    dispatcher = NotificationDispatcher(
        store,
        [
            sender_factory(NotificationChannel.APP),
            EmailSender(store, api_key="SG.fake", sender="noreply@example.com"),
        ],
        clock=clock,
        send_timeout=0.05,
    )

    started = clock_time.monotonic()
    notification_id = await dispatcher.create("u1", "org-1", _content())
    elapsed = clock_time.monotonic() - started

    assert elapsed < 0.4
    stored = await store.get_notification(notification_id)
    assert stored.delivered_via_app is True
    assert stored.delivered_via_email is False
    assert "email: timed out" in stored.delivery_error

    # Let the abandoned worker thread finish while the event loop is alive.
    await anyio.sleep(0.6)


async def test_sweep_skips_a_record_being_delivered_by_create(store, clock):
    sweep_results: list[int] = []

    class SweepingSender:
        channel = NotificationChannel.APP

        async def send(self, notification):
            sweep_results.append(await dispatcher.process_scheduled())
            return DeliveryOutcome.ok(self.channel)

    dispatcher = NotificationDispatcher(store, [SweepingSender()], clock=clock)

    notification_id = await dispatcher.create("u1", "org-1", _content())

    assert sweep_results == [0]
    assert (await store.get_notification(notification_id)).delivered_via_app is True


async def test_overlapping_sweeps_deliver_each_record_once(dispatcher, store, senders):
    ids = [
        await dispatcher.create(f"u{index}", "org-1", _content(), send_now=False)
        for index in range(4)
    ]
    results: list[int] = []

    async def sweep() -> None:
        results.append(await dispatcher.process_scheduled())

    async with anyio.create_task_group() as tg:
        tg.start_soon(sweep)
        tg.start_soon(sweep)

    assert sum(results) == 4
    assert sorted(n.id for n in senders[NotificationChannel.APP].sent) == sorted(ids)


async def test_unfinished_delivery_is_retried_once_its_claim_expires(session_factory, senders, clock):
    class DroppingStore(NotificationStore):
        drop_next_delivery = True

        async def record_delivery(self, notification_id, **kwargs):
            if self.drop_next_delivery:
                self.drop_next_delivery = False
                raise TransientStoreError("database went away")
            return await super().record_delivery(notification_id, **kwargs)

    store = DroppingStore(session_factory)
    dispatcher = NotificationDispatcher(store, senders.values(), clock=clock, claim_lease=60)

    notification_id = await dispatcher.create("u1", "org-1", _content())
    assert (await store.get_notification(notification_id)).delivery_attempted_at is None

    assert await dispatcher.process_scheduled() == 0

    clock.now = clock.now + timedelta(minutes=2)
    assert await dispatcher.process_scheduled() == 1
    assert (await store.get_notification(notification_id)).delivered_at is not None
