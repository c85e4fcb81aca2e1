from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .enums import PriorityLevel, RecurrenceType, TaskStatus


@dataclass(frozen=True)
class TaskEntity:
    id: int | None
    user_id: int
    name: str
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: int = PriorityLevel.LOW
    note: str = ""
    project_id: int | None = None
    due_date: Optional[datetime] = None
    tags: tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    recurrence_type: RecurrenceType = RecurrenceType.NONE
    recurrence_interval: int = 1
    recurrence_end_date: Optional[datetime] = None
    recurrence_weekday: int | None = None
    recurrence_weekdays: tuple[int, ...] | None = None
    recurrence_month_day: int | None = None
    recurrence_week_of_month: int | None = None
    completion_based: bool = False
    last_generated_date: Optional[datetime] = None
    recurring_parent_id: int | None = None

    @property
    def is_template(self) -> bool:
        return self.recurrence_type != RecurrenceType.NONE and self.recurring_parent_id is None

    @property
    def is_occurrence(self) -> bool:
        return self.recurring_parent_id is not None


def normalize_weekdays(value: Iterable[object] | None) -> tuple[int, ...] | None:
    """Sorted, de-duplicated weekdays (0 = Sunday), or None if absent or malformed."""
    if value is None or isinstance(value, (str, bytes)):
        return None
    days: set[int] = set()
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 6:
            return None
        days.add(item)
    return tuple(sorted(days)) or None


@dataclass(frozen=True)
class SubtaskEntity:
    id: int | None
    task_id: int
    name: str
    is_done: bool
    created_at: datetime
