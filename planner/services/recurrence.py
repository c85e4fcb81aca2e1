"""Next-occurrence math for daily, weekly and monthly recurrence rules.

All computation happens on calendar dates in the user's zone. Weekdays use
0 = Sunday ... 6 = Saturday, and a week starts on Sunday.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from planner.domain.entities import TaskEntity, normalize_weekdays
from planner.domain.enums import LAST_DAY_OF_MONTH, RecurrenceType

from .timezones import UTC, to_local_date

MAX_PREVIEW = 6
MAX_ITERATIONS = 5000


@dataclass(frozen=True)
class RecurrenceRule:
    recurrence_type: RecurrenceType
    interval: int = 1
    end_date: date | None = None
    weekday: int | None = None
    weekdays: tuple[int, ...] = ()
    month_day: int | None = None
    week_of_month: int | None = None
    completion_based: bool = False

    @classmethod
    def from_task(cls, task: TaskEntity, zone: ZoneInfo = UTC) -> "RecurrenceRule":
        end_date = None
        if task.recurrence_end_date is not None:
            end_date = to_local_date(task.recurrence_end_date, zone)
        month_day = task.recurrence_month_day
        if (
            month_day is None
            and task.recurrence_week_of_month is None
            and task.recurrence_type == RecurrenceType.MONTHLY
            and task.due_date is not None
        ):
            # Pin the day so short months do not drag the series earlier.
            month_day = to_local_date(task.due_date, zone).day
        return cls(
            recurrence_type=RecurrenceType(task.recurrence_type),
            interval=max(int(task.recurrence_interval or 1), 1),
            end_date=end_date,
            weekday=task.recurrence_weekday,
            weekdays=normalize_weekdays(task.recurrence_weekdays) or (),
            month_day=month_day,
            week_of_month=task.recurrence_week_of_month,
            completion_based=bool(task.completion_based),
        )

    @property
    def effective_weekdays(self) -> tuple[int, ...]:
        if self.weekdays:
            return self.weekdays
        if self.weekday is not None and 0 <= self.weekday <= 6:
            return (self.weekday,)
        return ()


class RecurrenceCalculator:
    def next_occurrence(self, rule: RecurrenceRule, reference: date) -> date | None:
        """First date strictly after ``reference`` on which ``rule`` fires."""
        if rule.end_date is not None and reference >= rule.end_date:
            return None
        next_date = self._advance(rule, reference)
        if next_date is None:
            return None
        if rule.end_date is not None and next_date > rule.end_date:
            return None
        return next_date

    def matches(self, rule: RecurrenceRule, day: date) -> bool:
        if rule.end_date is not None and day > rule.end_date:
            return False
        if rule.recurrence_type == RecurrenceType.DAILY:
            return True
        if rule.recurrence_type == RecurrenceType.WEEKLY:
            return weekday_of(day) in rule.effective_weekdays
        if rule.recurrence_type == RecurrenceType.MONTHLY:
            if rule.week_of_month is not None:
                if rule.weekday is None or not 1 <= rule.week_of_month <= 5:
                    return False
                return day == _nth_weekday(day.year, day.month, rule.weekday, rule.week_of_month)
            if rule.month_day is None:
                # The anchor itself defines the day of month.
                return True
            return day == _clamped_day(day.year, day.month, rule.month_day)
        return False

    def first_occurrence_on_or_after(self, rule: RecurrenceRule, day: date) -> date | None:
        if self.matches(rule, day):
            return day
        return self.next_occurrence(rule, day)

    def next_iterations(
        self, rule: RecurrenceRule, start: date, count: int = MAX_PREVIEW
    ) -> list[date]:
        """Preview up to ``count`` (at most six) upcoming dates, ``start`` included if it fires."""
        count = max(1, min(int(count), MAX_PREVIEW))
        iterations: list[date] = []
        current = self.first_occurrence_on_or_after(rule, start)
        while current is not None and len(iterations) < count:
            iterations.append(current)
            current = self.next_occurrence(rule, current)
        return iterations

    def occurrences(
        self, rule: RecurrenceRule, anchor: date, start: date, end: date
    ) -> Iterator[date]:
        """Dates of the series anchored at ``anchor`` that fall in ``[start, end]``."""
        current = self.first_occurrence_on_or_after(rule, anchor)
        if current is None:
            return
        if rule.recurrence_type == RecurrenceType.DAILY and current < start:
            step = max(rule.interval, 1)
            current += timedelta(days=(start - current).days // step * step)

        iterations = 0
        while current is not None and current <= end and iterations < MAX_ITERATIONS:
            if current >= start:
                yield current
            current = self.next_occurrence(rule, current)
            iterations += 1

    def _advance(self, rule: RecurrenceRule, reference: date) -> date | None:
        interval = max(rule.interval, 1)
        if rule.recurrence_type == RecurrenceType.DAILY:
            return reference + timedelta(days=interval)
        if rule.recurrence_type == RecurrenceType.WEEKLY:
            if rule.weekdays:
                return _next_listed_weekday(reference, rule.weekdays, interval)
            if rule.weekday is not None and 0 <= rule.weekday <= 6:
                return _next_weekday(reference, rule.weekday, interval)
            return None
        if rule.recurrence_type == RecurrenceType.MONTHLY:
            if rule.week_of_month is not None:
                if rule.weekday is None or not 1 <= rule.week_of_month <= 5:
                    return None
                return _next_nth_weekday(reference, rule.weekday, rule.week_of_month, interval)
            return _next_month_day(reference, rule.month_day or reference.day, interval)
        return None


def weekday_of(day: date) -> int:
    return day.isoweekday() % 7


def _next_weekday(reference: date, weekday: int, interval: int) -> date:
    days_until = (weekday - weekday_of(reference)) % 7
    if days_until == 0:
        return reference + timedelta(weeks=interval)
    return reference + timedelta(days=days_until)


def _next_listed_weekday(reference: date, weekdays: tuple[int, ...], interval: int) -> date | None:
    offset = weekday_of(reference)
    for ahead in range(1, 7 - offset):
        candidate = reference + timedelta(days=ahead)
        if weekday_of(candidate) in weekdays:
            return candidate

    cycle_start = reference - timedelta(days=offset) + timedelta(weeks=interval)
    for ahead in range(7):
        candidate = cycle_start + timedelta(days=ahead)
        if weekday_of(candidate) in weekdays:
            return candidate
    return None


def _next_month_day(reference: date, month_day: int, interval: int) -> date:
    candidate = _clamped_day(reference.year, reference.month, month_day)
    if candidate > reference:
        return candidate
    year, month = _shift_month(reference.year, reference.month, interval)
    return _clamped_day(year, month, month_day)


def _next_nth_weekday(reference: date, weekday: int, week_of_month: int, interval: int) -> date:
    candidate = _nth_weekday(reference.year, reference.month, weekday, week_of_month)
    if candidate > reference:
        return candidate
    year, month = _shift_month(reference.year, reference.month, interval)
    return _nth_weekday(year, month, weekday, week_of_month)


def _nth_weekday(year: int, month: int, weekday: int, week_of_month: int) -> date:
    first = date(year, month, 1)
    day = 1 + (weekday - weekday_of(first)) % 7 + (week_of_month - 1) * 7
    if day > _days_in_month(year, month):
        day -= 7
    return date(year, month, day)


def _clamped_day(year: int, month: int, month_day: int) -> date:
    last_day = _days_in_month(year, month)
    if month_day == LAST_DAY_OF_MONTH:
        return date(year, month, last_day)
    return date(year, month, max(1, min(month_day, last_day)))


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    year = year + (month - 1 + months) // 12
    month = (month - 1 + months) % 12 + 1
    return year, month


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - timedelta(days=1)).day
