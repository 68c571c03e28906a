"""Create notifications and deliver them through the enabled channels."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol, Sequence

import anyio

from projectflow.domain.entities import (
    AUDIT_ACTION_CREATE,
    Notification,
    NotificationCategory,
    NotificationChannel,
    NotificationContent,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
)
from projectflow.domain.errors import (
    ChannelDeliveryError,
    TransientStoreError,
    ValidationError,
)
from projectflow.infrastructure.channels import ChannelSender, DeliveryOutcome
from projectflow.utils import ensure_app_timezone, now_in_app_timezone

from ..audit_logs import AuditTrail
from .preference_resolver import resolve

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
DEFAULT_SEND_TIMEOUT_SECONDS = 10.0
DEFAULT_BULK_CONCURRENCY = 10
DEFAULT_SWEEP_BATCH_SIZE = 50
DEFAULT_CLAIM_LEASE_SECONDS = 300.0


class DispatchStore(Protocol):
    async def create_notification(
        self, notification: Notification, *, claimed_at: datetime | None = None
    ) -> Notification:
        ...

    async def get_or_create_preference(self, user_id: str, org_id: str) -> NotificationPreference:
        ...

    async def record_delivery(
        self,
        notification_id: int,
        *,
        attempted_at: datetime,
        delivered_at: datetime | None,
        via_app: bool,
        via_email: bool,
        via_push: bool,
        error: str | None,
    ) -> Notification | None:
        ...

    async def claim_pending(
        self,
        *,
        due_before: datetime,
        claimed_at: datetime,
        stale_before: datetime,
        limit: int,
    ) -> Sequence[Notification]:
        ...


def validate_content(content: NotificationContent) -> NotificationContent:
    """Return a normalized copy of ``content`` or raise :class:`ValidationError`."""

    try:
        kind = NotificationType(content.type)
        category = NotificationCategory(content.category)
        priority = NotificationPriority(content.priority)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    title = (content.title or "").strip()
    message = (content.message or "").strip()
    if not title:
        raise ValidationError("Notification title must not be empty")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Notification title must be at most {MAX_TITLE_LENGTH} characters")
    if not message:
        raise ValidationError("Notification message must not be empty")

    return replace(
        content,
        type=kind,
        category=category,
        priority=priority,
        title=title,
        message=message,
        payload=dict(content.payload or {}),
        entity_id=str(content.entity_id) if content.entity_id is not None else None,
        scheduled_for=ensure_app_timezone(content.scheduled_for),
    )


class NotificationDispatcher:
    """Persist notifications and fan them out to channel senders.

    A record is always persisted before any delivery is attempted. Channel
    failures and timeouts are recorded on the record and logged, never raised.
    """

    def __init__(
        self,
        store: DispatchStore,
        senders: Iterable[ChannelSender],
        *,
        clock: Callable[[], datetime] = now_in_app_timezone,
        send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        bulk_concurrency: int = DEFAULT_BULK_CONCURRENCY,
        sweep_batch_size: int = DEFAULT_SWEEP_BATCH_SIZE,
        claim_lease: float = DEFAULT_CLAIM_LEASE_SECONDS,
        audit: AuditTrail | None = None,
    ) -> None:
        self._store = store
        self._senders = {sender.channel: sender for sender in senders}
        self._clock = clock
        self._send_timeout = send_timeout
        self._bulk_concurrency = bulk_concurrency
        self._sweep_batch_size = sweep_batch_size
        self._claim_lease = timedelta(seconds=claim_lease)
        self._audit = audit

    async def create(
        self,
        recipient_id: str,
        org_id: str,
        content: NotificationContent,
        *,
        send_now: bool = True,
        actor_id: str | None = None,
    ) -> int:
        """Persist a notification for ``recipient_id`` and deliver it when due."""

        normalized = validate_content(content)
        _require_identifier(recipient_id, "recipient")
        _require_identifier(org_id, "organization")

        saved = await self._persist(recipient_id, org_id, normalized, send_now=send_now)
        if self._audit is not None and actor_id is not None:
            await self._audit.record(
                user_id=actor_id,
                org_id=org_id,
                action=AUDIT_ACTION_CREATE,
                entity_type="notification",
                entity_id=saved.id,
                metadata={"recipient_id": recipient_id, "type": normalized.type.value},
            )
        return saved.id

    async def create_bulk(
        self,
        recipient_ids: Iterable[str],
        org_id: str,
        content: NotificationContent,
        *,
        send_now: bool = True,
        actor_id: str | None = None,
    ) -> list[int]:
        """Create one notification per distinct recipient.

        Recipients are processed concurrently up to the configured bound. A
        recipient whose flow fails is logged and skipped; the identifiers of
        the notifications that were created are returned in no particular
        order.
        """

        recipients = list(dict.fromkeys(rid for rid in recipient_ids if rid))
        if not recipients:
            raise ValidationError("At least one recipient is required")
        normalized = validate_content(content)
        _require_identifier(org_id, "organization")

        created: list[int] = []
        limiter = anyio.CapacityLimiter(self._bulk_concurrency)

        async def _create_for(recipient_id: str) -> None:
            async with limiter:
                try:
                    saved = await self._persist(
                        recipient_id, org_id, normalized, send_now=send_now
                    )
                except Exception:  # noqa: BLE001 - one recipient never fails the batch
                    logger.exception(
                        "Failed to create notification for recipient %s", recipient_id
                    )
                    return
                created.append(saved.id)

        async with anyio.create_task_group() as tg:
            for recipient_id in recipients:
                tg.start_soon(_create_for, recipient_id)

        logger.info(
            "Bulk notification %s created for %s of %s recipient(s) in org %s",
            normalized.type.value,
            len(created),
            len(recipients),
            org_id,
        )
        if self._audit is not None and actor_id is not None:
            await self._audit.record(
                user_id=actor_id,
                org_id=org_id,
                action=AUDIT_ACTION_CREATE,
                entity_type="notification",
                metadata={
                    "type": normalized.type.value,
                    "requested": len(recipients),
                    "created": len(created),
                },
            )
        return created

    async def deliver(self, notification: Notification, *, now: datetime | None = None) -> Notification:
        """Run the delivery step for a persisted ``notification``."""

        moment = now or self._clock()
        preference = await self._store.get_or_create_preference(
            notification.recipient_id, notification.org_id
        )
        decision = resolve(preference, notification.category, notification.priority, moment)

        outcomes: dict[NotificationChannel, DeliveryOutcome] = {}
        channels = [
            channel for channel in decision.enabled_channels() if channel in self._senders
        ]
        if not channels:
            logger.debug("Notification %s has no enabled channel", notification.id)
        else:
            async with anyio.create_task_group() as tg:
                for channel in channels:
                    tg.start_soon(self._send_on_channel, channel, notification, outcomes)

        attempted_at = self._clock()
        failures = [
            f"{outcome.channel.value}: {outcome.error}"
            for outcome in outcomes.values()
            if not outcome.success
        ]
        recorded = await self._store.record_delivery(
            notification.id,
            attempted_at=attempted_at,
            delivered_at=attempted_at if outcomes else None,
            via_app=_succeeded(outcomes, NotificationChannel.APP),
            via_email=_succeeded(outcomes, NotificationChannel.EMAIL),
            via_push=_succeeded(outcomes, NotificationChannel.PUSH),
            error="; ".join(failures) or None,
        )
        if recorded is None:
            # Deleted while delivery was in flight.
            logger.info("Notification %s disappeared before delivery was recorded", notification.id)
            return notification
        return recorded

    async def process_scheduled(
        self, *, now: datetime | None = None, batch_size: int | None = None
    ) -> int:
        """Deliver pending notifications that are due and return how many ran.

        Records are claimed before delivery, so overlapping sweeps and
        in-flight creations never deliver the same record twice. A claim whose
        delivery step did not finish expires after the claim lease and the
        record becomes claimable again.
        """

        moment = now or self._clock()
        limit = batch_size or self._sweep_batch_size
        if limit <= 0:
            raise ValidationError("Batch size must be positive")

        pending = await self._store.claim_pending(
            due_before=moment,
            claimed_at=moment,
            stale_before=moment - self._claim_lease,
            limit=limit,
        )
        processed = 0
        limiter = anyio.CapacityLimiter(self._bulk_concurrency)

        async def _deliver(notification: Notification) -> None:
            nonlocal processed
            async with limiter:
                try:
                    await self.deliver(notification, now=moment)
                except TransientStoreError:
                    logger.warning(
                        "Store unavailable while delivering notification %s; "
                        "it is retried once its claim expires",
                        notification.id,
                    )
                    return
                processed += 1

        async with anyio.create_task_group() as tg:
            for notification in pending:
                tg.start_soon(_deliver, notification)

        if pending:
            logger.info("Scheduled sweep delivered %s of %s pending notification(s)", processed, len(pending))
        return processed

    async def _persist(
        self,
        recipient_id: str,
        org_id: str,
        content: NotificationContent,
        *,
        send_now: bool = True,
    ) -> Notification:
        now = self._clock()
        due = content.scheduled_for is None or content.scheduled_for <= ensure_app_timezone(now)
        deliver_now = send_now and due
        saved = await self._store.create_notification(
            Notification(
                id=None,
                recipient_id=recipient_id,
                org_id=org_id,
                type=content.type,
                category=content.category,
                title=content.title,
                message=content.message,
                priority=content.priority,
                payload=dict(content.payload),
                entity_type=content.entity_type,
                entity_id=content.entity_id,
                created_at=now,
                scheduled_for=content.scheduled_for,
            ),
            claimed_at=now if deliver_now else None,
        )
        if not deliver_now:
            return saved
        try:
            return await self.deliver(saved, now=now)
        except TransientStoreError:
            logger.warning(
                "Delivery of notification %s deferred to the scheduled sweep", saved.id
            )
            return saved

    async def _send_on_channel(
        self,
        channel: NotificationChannel,
        notification: Notification,
        outcomes: dict[NotificationChannel, DeliveryOutcome],
    ) -> None:
        sender = self._senders[channel]
        try:
            with anyio.fail_after(self._send_timeout):
                outcome = await sender.send(notification)
        except TimeoutError:
            outcome = DeliveryOutcome.failed(channel, f"timed out after {self._send_timeout:g}s")
        except Exception as exc:  # noqa: BLE001 - sender failures are recorded, not raised
            outcome = DeliveryOutcome.failed(channel, str(exc) or exc.__class__.__name__)

        if not outcome.success:
            error = ChannelDeliveryError(channel.value, outcome.error or "unknown error")
            logger.warning("Notification %s: %s", notification.id, error)
        outcomes[channel] = outcome


def _succeeded(outcomes: dict[NotificationChannel, DeliveryOutcome], channel: NotificationChannel) -> bool:
    outcome = outcomes.get(channel)
    return bool(outcome and outcome.success)


def _require_identifier(value: str, label: str) -> None:
    if not value or not str(value).strip():
        raise ValidationError(f"A {label} identifier is required")


__all__ = ["DispatchStore", "NotificationDispatcher", "validate_content"]
