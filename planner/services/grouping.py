from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable
from zoneinfo import ZoneInfo

from planner.domain.entities import TaskEntity

from .locales import DayLabels, LocaleRegistry, build_locale_registry
from .timezones import local_today, safe_zone, to_local_date, to_local_datetime

logger = logging.getLogger(__name__)

DEFAULT_SORT_ORDER = "created_at:desc"


def _sort_key(field: str, zone: ZoneInfo) -> Callable[[TaskEntity], object] | None:
    if field == "name":
        return lambda task: (task.name or "").casefold()
    if field == "priority":
        return lambda task: int(task.priority or 0)
    if field == "due_date":
        return lambda task: (
            to_local_datetime(task.due_date, zone).time() if task.due_date else time.max
        )
    if field == "created_at":
        return lambda task: task.created_at or datetime.min
    return None


def sort_tasks(tasks: Iterable[TaskEntity], sort_order: str, zone: ZoneInfo) -> list[TaskEntity]:
    field, _, direction = (sort_order or DEFAULT_SORT_ORDER).partition(":")
    key = _sort_key(field, zone)
    if key is None:
        logger.debug("Unknown sort order %r, using %s", sort_order, DEFAULT_SORT_ORDER)
        field, direction = DEFAULT_SORT_ORDER.split(":")
        key = _sort_key(field, zone)
    return sorted(tasks, key=key, reverse=direction.lower() == "desc")


class OccurrenceGrouping:
    def __init__(self, locales: LocaleRegistry | None = None) -> None:
        self._locales = locales or build_locale_registry()

    def group_by_day(
        self,
        tasks: Iterable[TaskEntity],
        timezone: str | None = None,
        horizon_days: int = 14,
        sort_order: str = DEFAULT_SORT_ORDER,
        language: str = "en",
        now: datetime | None = None,
    ) -> dict[str, list[TaskEntity]]:
        """Bucket tasks by local due date, chronologically, with undated tasks last."""
        zone = safe_zone(timezone)
        today = local_today(zone, now)
        cutoff = today + timedelta(days=horizon_days)

        by_day: dict[date, list[TaskEntity]] = {}
        undated: list[TaskEntity] = []
        for task in tasks:
            if task.due_date is None:
                undated.append(task)
                continue
            day = to_local_date(task.due_date, zone)
            if day > cutoff:
                continue
            by_day.setdefault(day, []).append(task)

        labels = self._locales.resolve(language)
        grouped: dict[str, list[TaskEntity]] = {}
        for day in sorted(by_day):
            label = self.day_label(day, today, labels)
            grouped.setdefault(label, []).extend(sort_tasks(by_day[day], sort_order, zone))

        if undated:
            grouped[labels.no_due_date] = sort_tasks(undated, sort_order, zone)
        return grouped

    @staticmethod
    def day_label(day: date, today: date, labels: DayLabels) -> str:
        if day == today:
            return labels.today
        if day == today + timedelta(days=1):
            return labels.tomorrow
        return labels.day_label(day)
