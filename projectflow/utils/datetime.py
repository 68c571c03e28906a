"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Final

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from projectflow.config import get_settings

_DEFAULT_TIMEZONE: Final[str] = "UTC"
_UTC_ALIASES: Final[frozenset[str]] = frozenset({"utc", "gmt", "z", "etc/utc"})
_OFFSET_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:UTC|GMT)(?P<sign>[+-])(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?$",
    re.IGNORECASE,
)
_CLOCK_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<hours>[01]?\d|2[0-3]):(?P<minutes>[0-5]\d)(?::(?P<seconds>[0-5]\d))?$"
)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the configured application timezone.

    The timezone is resolved using the ``APP_TIMEZONE`` environment variable (via
    the ``Settings`` object). If the provided value cannot be resolved, UTC is
    used as a fallback.
    """

    settings = get_settings()
    tz_name = (settings.app_timezone or "").strip() or _DEFAULT_TIMEZONE
    return resolve_timezone(tz_name, strict=False)


def now_in_app_timezone() -> datetime:
    """Return the current time localized to the configured timezone."""

    return datetime.now(tz=get_app_timezone())


def now_in_app_naive_datetime() -> datetime:
    """Return the current localized time without attaching ``tzinfo``."""

    localized = ensure_app_naive_datetime(now_in_app_timezone())
    if localized is None:  # pragma: no cover
        msg = "Failed to compute the application naive datetime"
        raise RuntimeError(msg)
    return localized


def ensure_app_timezone(value: datetime | None) -> datetime | None:
    """Normalize ``value`` so it is expressed in the configured timezone."""

    if value is None:
        return None

    tz = get_app_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def ensure_app_naive_datetime(value: datetime | None) -> datetime | None:
    """Return ``value`` localized to the app timezone but without ``tzinfo``.

    Timestamps are stored as naive values expressed in the application timezone
    so the same columns work on SQLite, PostgreSQL and SQL Server. The domain
    layer keeps working with aware datetimes.
    """

    localized = ensure_app_timezone(value)
    if localized is None:
        return None
    return localized.replace(tzinfo=None)


def resolve_timezone(tz_name: str, *, strict: bool = True) -> tzinfo:
    """Resolve ``tz_name`` into a ``tzinfo`` instance.

    IANA names, ``UTC`` and fixed offsets such as ``UTC+05:30`` are accepted.
    Unknown names raise ``ValueError`` when ``strict`` is set and fall back to
    UTC otherwise.
    """

    name = (tz_name or "").strip()
    if not name or name.lower() in _UTC_ALIASES:
        return timezone.utc

    match = _OFFSET_PATTERN.match(name)
    if match:
        sign = -1 if match.group("sign") == "-" else 1
        hours = int(match.group("hours"))
        minutes = int(match.group("minutes") or 0)
        try:
            return timezone(sign * timedelta(hours=hours, minutes=minutes))
        except ValueError as exc:
            if strict:
                raise ValueError(f"Unknown timezone '{tz_name}'") from exc
            return timezone.utc

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        if strict:
            raise ValueError(f"Unknown timezone '{tz_name}'") from exc
    return timezone.utc


def parse_clock_time(value: str | time) -> time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) string into a :class:`time`."""

    if isinstance(value, time):
        return value.replace(tzinfo=None)
    match = _CLOCK_PATTERN.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid clock time '{value}', expected HH:MM")
    return time(
        hour=int(match.group("hours")),
        minute=int(match.group("minutes")),
        second=int(match.group("seconds") or 0),
    )


def format_clock_time(value: time) -> str:
    """Return ``value`` formatted as ``HH:MM``."""

    return value.strftime("%H:%M")
