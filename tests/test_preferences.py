"""Tests for lazy preference creation and partial upserts."""

from __future__ import annotations

from datetime import time

import anyio
import pytest

from projectflow.application.use_cases.notifications import get_preferences, upsert_preferences
from projectflow.application.use_cases.audit_logs import AuditTrail
from projectflow.domain.entities import (
    AUDIT_ACTION_PREFERENCES_UPDATED,
    DigestFrequency,
    NotificationCategory,
    NotificationChannel,
    NotificationPreferenceUpdate,
)
from projectflow.domain.errors import ValidationError
from projectflow.infrastructure.models import NotificationPreferenceModel
from projectflow.infrastructure.repositories import AuditLogRepository

pytestmark = pytest.mark.anyio


async def test_first_access_creates_documented_defaults(store):
    preference = await get_preferences(store, user_id="u1", org_id="org-1")

    assert preference.id is not None
    assert (preference.channels.app, preference.channels.email, preference.channels.push) == (
        True,
        True,
        True,
    )
    assert preference.digest_frequency is DigestFrequency.DAILY
    assert preference.quiet_hours.enabled is False
    assert preference.quiet_hours.start == time(22, 0)
    assert preference.quiet_hours.end == time(8, 0)
    assert preference.quiet_hours.timezone == "UTC"
    assert preference.weekends.app is True
    assert preference.weekends.email is True
    for category in NotificationCategory:
        assert preference.is_category_enabled(category, NotificationChannel.APP) is True
    assert preference.is_category_enabled(NotificationCategory.SYSTEM, NotificationChannel.EMAIL) is False
    assert preference.is_category_enabled(NotificationCategory.TASK, NotificationChannel.EMAIL) is True


async def test_concurrent_first_access_creates_a_single_row(store, session_factory):
    results = []

    async def _load() -> None:
        results.append(await get_preferences(store, user_id="u1", org_id="org-1"))

    async with anyio.create_task_group() as tg:
        for _ in range(5):
            tg.start_soon(_load)

    assert len({preference.id for preference in results}) == 1
    with session_factory() as session:
        assert (
            session.query(NotificationPreferenceModel)
            .filter_by(user_id="u1", org_id="org-1")
            .count()
            == 1
        )


async def test_preferences_are_scoped_per_organization(store):
    first = await get_preferences(store, user_id="u1", org_id="org-1")
    second = await get_preferences(store, user_id="u1", org_id="org-2")

    assert first.id != second.id


async def test_upsert_applies_only_provided_fields(store):
    update = NotificationPreferenceUpdate(
        enable_email=False,
        digest_frequency=DigestFrequency.WEEKLY,
        category_switches={(NotificationCategory.MEETING, NotificationChannel.APP): False},
        quiet_hours_enabled=True,
        quiet_hours_start=time(21, 30),
        quiet_hours_timezone="Europe/Madrid",
    )

    saved = await upsert_preferences(store, user_id="u1", org_id="org-1", update=update)
    reloaded = await get_preferences(store, user_id="u1", org_id="org-1")

    for preference in (saved, reloaded):
        assert preference.channels.email is False
        assert preference.channels.app is True
        assert preference.digest_frequency is DigestFrequency.WEEKLY
        assert preference.is_category_enabled(NotificationCategory.MEETING, NotificationChannel.APP) is False
        assert preference.is_category_enabled(NotificationCategory.TASK, NotificationChannel.APP) is True
        assert preference.quiet_hours.enabled is True
        assert preference.quiet_hours.start == time(21, 30)
        assert preference.quiet_hours.end == time(8, 0)
        assert preference.quiet_hours.timezone == "Europe/Madrid"
    assert reloaded.updated_at is not None


@pytest.mark.parametrize("zone", ["Mars/Olympus", "America", "UTC+24"])
async def test_upsert_rejects_unknown_timezone(store, zone):
    update = NotificationPreferenceUpdate(quiet_hours_timezone=zone)

    with pytest.raises(ValidationError):
        await upsert_preferences(store, user_id="u1", org_id="org-1", update=update)

    preference = await get_preferences(store, user_id="u1", org_id="org-1")
    assert preference.quiet_hours.timezone == "UTC"


async def test_upsert_rejects_push_category_switch(store):
    update = NotificationPreferenceUpdate(
        category_switches={(NotificationCategory.TASK, NotificationChannel.PUSH): False}
    )

    with pytest.raises(ValidationError):
        await upsert_preferences(store, user_id="u1", org_id="org-1", update=update)


async def test_upsert_records_an_audit_entry(store, session_factory):
    update = NotificationPreferenceUpdate(enable_push=False)

    await upsert_preferences(
        store, user_id="u1", org_id="org-1", update=update, audit=AuditTrail(store)
    )

    with session_factory() as session:
        entries = AuditLogRepository(session).list(org_id="org-1")
    assert [entry.action for entry in entries] == [AUDIT_ACTION_PREFERENCES_UPDATED]
    assert entries[0].metadata == {"enable_push": False}


async def test_audit_failures_never_reach_the_caller(store):
    class BrokenWriter:
        async def create_audit_log(self, entry):
            raise RuntimeError("audit store down")

    update = NotificationPreferenceUpdate(enable_push=False)

    saved = await upsert_preferences(
        store, user_id="u1", org_id="org-1", update=update, audit=AuditTrail(BrokenWriter())
    )

    assert saved.channels.push is False
