from __future__ import annotations

from enum import IntEnum, StrEnum


class TaskStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    DONE = "done"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class RecurrenceType(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class PriorityLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


# recurrence_month_day sentinel: resolve to the final calendar day of the month.
LAST_DAY_OF_MONTH = -1

INACTIVE_STATUSES = frozenset({TaskStatus.ARCHIVED, TaskStatus.CANCELLED})
CLOSED_STATUSES = frozenset({TaskStatus.DONE, TaskStatus.ARCHIVED, TaskStatus.CANCELLED})
