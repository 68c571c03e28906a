"""Purge notifications older than the retention window."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Protocol

from projectflow.domain.errors import ValidationError
from projectflow.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


class RetentionPolicy(str, Enum):
    """Which expired notifications are removed by a cleanup run."""

    ALL = "all"
    READ_ONLY = "read_only"


class RetentionStore(Protocol):
    async def delete_created_before(self, cutoff: datetime, *, read_only: bool) -> int:
        ...


class RetentionSweeper:
    def __init__(
        self,
        store: RetentionStore,
        *,
        policy: RetentionPolicy = RetentionPolicy.ALL,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self._store = store
        self._policy = policy
        self._clock = clock

    async def cleanup(
        self, days_to_keep: int, policy: RetentionPolicy | str | None = None
    ) -> int:
        """Delete notifications created more than ``days_to_keep`` days ago."""

        if days_to_keep < 0:
            raise ValidationError("days_to_keep must not be negative")
        try:
            effective = RetentionPolicy(policy) if policy is not None else self._policy
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        cutoff = self._clock() - timedelta(days=days_to_keep)
        deleted = await self._store.delete_created_before(
            cutoff, read_only=effective is RetentionPolicy.READ_ONLY
        )
        logger.info(
            "Retention cleanup removed %s notification(s) older than %s day(s) (policy=%s)",
            deleted,
            days_to_keep,
            effective.value,
        )
        return deleted


__all__ = ["RetentionPolicy", "RetentionStore", "RetentionSweeper"]
