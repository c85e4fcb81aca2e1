"""Conversions between stored UTC instants and a user's calendar dates.

Instants are kept as naive UTC datetimes throughout storage; these helpers are
the only place that attaches a zone to them.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


@lru_cache(maxsize=128)
def safe_zone(name: str | None) -> ZoneInfo:
    """Return the zone for ``name``, or UTC when it is empty or unknown."""
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.debug("Unknown timezone %r, using UTC", name)
        return UTC


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_aware_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_local_date(instant: datetime, zone: ZoneInfo) -> date:
    return _as_aware_utc(instant).astimezone(zone).date()


def to_local_datetime(instant: datetime, zone: ZoneInfo) -> datetime:
    return _as_aware_utc(instant).astimezone(zone)


def local_today(zone: ZoneInfo, now: datetime | None = None) -> date:
    return to_local_date(now or utcnow(), zone)


def local_midnight_utc(day: date, zone: ZoneInfo) -> datetime:
    local = datetime.combine(day, time.min, tzinfo=zone)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_bounds_utc(day: date, zone: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` UTC bounds of ``day`` in ``zone``."""
    return local_midnight_utc(day, zone), local_midnight_utc(day + timedelta(days=1), zone)
