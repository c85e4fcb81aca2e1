from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from enum import Enum

from planner.domain.entities import SubtaskEntity, TaskEntity, normalize_weekdays
from planner.domain.enums import RecurrenceType, TaskStatus
from planner.domain.filters import TaskFilters
from planner.infra.repository import TaskRepository

from .grouping import DEFAULT_SORT_ORDER, OccurrenceGrouping
from .materializer import InstanceMaterializer
from .recurrence import MAX_PREVIEW, RecurrenceCalculator, RecurrenceRule
from .recurrence_updates import RecurrenceUpdateCoordinator
from .timezones import local_midnight_utc, local_today, safe_zone, utcnow

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        materializer: InstanceMaterializer | None = None,
        coordinator: RecurrenceUpdateCoordinator | None = None,
        grouping: OccurrenceGrouping | None = None,
        calculator: RecurrenceCalculator | None = None,
        horizon_days: int = 7,
    ) -> None:
        self._repo = repo
        self._calculator = calculator or RecurrenceCalculator()
        self._materializer = materializer or InstanceMaterializer(repo, self._calculator)
        self._coordinator = coordinator or RecurrenceUpdateCoordinator(repo)
        self._grouping = grouping or OccurrenceGrouping()
        self._horizon_days = horizon_days

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        return self._repo.list_tasks(filters)

    def get_task(self, task_id: int) -> TaskEntity | None:
        return self._repo.get_task(task_id)

    def create_task(self, data: dict) -> TaskEntity:
        normalized = self._normalize_data(data)
        if (
            normalized.get("recurrence_type", RecurrenceType.NONE.value) != RecurrenceType.NONE.value
            and normalized.get("recurring_parent_id") is not None
        ):
            raise ValueError("A recurring template cannot belong to another template")
        return self._repo.create_task(normalized)

    def update_task(self, task_id: int, data: dict) -> TaskEntity | None:
        normalized = self._normalize_data(data)
        existing = self._repo.get_task(task_id)
        if not existing:
            return None

        status = normalized.get("status")
        if status == TaskStatus.DONE.value and "completed_at" not in normalized:
            normalized["completed_at"] = utcnow()
        if status and status != TaskStatus.DONE.value:
            normalized["completed_at"] = None

        if existing.is_template:
            self._coordinator.on_template_update(existing, normalized)
        return self._repo.update_task(task_id, normalized)

    def delete_task(self, task_id: int) -> None:
        task = self._repo.get_task(task_id)
        if not task:
            return
        if task.is_template:
            self._coordinator.discard_future_occurrences(task)
            detached = self._repo.detach_occurrences(task_id)
            logger.info("Detached %s occurrences from deleted template %s", detached, task_id)
        self._repo.delete_task(task_id)

    def mark_done(self, task_id: int) -> TaskEntity | None:
        return self.update_task(task_id, {"status": TaskStatus.DONE.value})

    def archive_task(self, task_id: int) -> TaskEntity | None:
        return self.update_task(task_id, {"status": TaskStatus.ARCHIVED.value})

    def add_subtask(self, task_id: int, name: str) -> SubtaskEntity:
        return self._repo.add_subtask(task_id, name)

    def list_upcoming(
        self,
        user_id: int,
        timezone: str | None = None,
        days: int = 14,
        sort_order: str = DEFAULT_SORT_ORDER,
        language: str = "en",
        now: datetime | None = None,
    ) -> dict[str, list[TaskEntity]]:
        now = now or utcnow()
        self._materializer.materialize(user_id, self._horizon_days, timezone=timezone, now=now)

        zone = safe_zone(timezone)
        today = local_today(zone, now)
        tasks = self._repo.list_tasks(
            TaskFilters(
                user_id=user_id,
                filter_key="upcoming",
                due_from=local_midnight_utc(today, zone),
                due_until=local_midnight_utc(today + timedelta(days=days + 1), zone),
            )
        )
        return self._grouping.group_by_day(
            tasks, timezone, horizon_days=days, sort_order=sort_order, language=language, now=now
        )

    def preview_iterations(
        self,
        task_id: int,
        start: date | None = None,
        timezone: str | None = None,
        count: int = MAX_PREVIEW,
    ) -> list[date]:
        task = self._repo.get_task(task_id)
        if not task or task.recurrence_type == RecurrenceType.NONE:
            return []
        zone = safe_zone(timezone)
        rule = RecurrenceRule.from_task(task, zone)
        return self._calculator.next_iterations(rule, start or local_today(zone), count)

    def _normalize_data(self, data: dict) -> dict:
        normalized = dict(data)
        for key, value in normalized.items():
            if isinstance(value, Enum):
                normalized[key] = value.value
        if "recurrence_weekdays" in normalized:
            normalized["recurrence_weekdays"] = normalize_weekdays(normalized["recurrence_weekdays"])
        if "recurrence_interval" in normalized:
            normalized["recurrence_interval"] = max(int(normalized["recurrence_interval"] or 1), 1)
        if "tags" in normalized and normalized["tags"] is not None:
            normalized["tags"] = list(normalized["tags"])
        return normalized

