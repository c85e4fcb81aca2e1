from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from planner.domain.entities import TaskEntity, normalize_weekdays
from planner.domain.enums import CLOSED_STATUSES, RecurrenceType
from planner.domain.errors import DependentRecordsError
from planner.infra.repository import TaskRepository

from .timezones import utcnow

logger = logging.getLogger(__name__)

RECURRENCE_FIELDS = (
    "recurrence_type",
    "recurrence_interval",
    "recurrence_weekday",
    "recurrence_weekdays",
    "recurrence_month_day",
    "recurrence_week_of_month",
    "recurrence_end_date",
    "completion_based",
)

# Copied into every occurrence, so a change makes future occurrences stale.
TEMPLATE_FIELDS = ("name", "project_id", "priority", "note")


def _comparable(field: str, value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if field == "recurrence_weekdays":
        return normalize_weekdays(value)
    if field == "completion_based":
        return bool(value)
    return value


def _changed(template: TaskEntity, incoming: Mapping[str, Any], fields: tuple[str, ...]) -> bool:
    for field in fields:
        if field not in incoming:
            continue
        if _comparable(field, incoming[field]) != _comparable(field, getattr(template, field)):
            return True
    return False


def recurrence_changed(template: TaskEntity, incoming: Mapping[str, Any]) -> bool:
    return _changed(template, incoming, RECURRENCE_FIELDS)


def template_fields_changed(template: TaskEntity, incoming: Mapping[str, Any]) -> bool:
    return _changed(template, incoming, TEMPLATE_FIELDS)


class RecurrenceUpdateCoordinator:
    """Discards stale future occurrences when a template is edited.

    Nothing is regenerated here; the next materialization pass recreates the
    discarded dates from the updated rule.
    """

    def __init__(self, repo: TaskRepository) -> None:
        self._repo = repo

    def on_template_update(
        self,
        template: TaskEntity,
        incoming: Mapping[str, Any],
        now: datetime | None = None,
    ) -> bool:
        if not (recurrence_changed(template, incoming) or template_fields_changed(template, incoming)):
            return False

        new_type = RecurrenceType(
            _comparable("recurrence_type", incoming.get("recurrence_type", template.recurrence_type))
        )
        if new_type == RecurrenceType.NONE:
            return False

        self.discard_future_occurrences(template, now=now)
        return True

    def discard_future_occurrences(self, template: TaskEntity, now: datetime | None = None) -> int:
        now = now or utcnow()
        kept: list[TaskEntity] = []
        deleted = 0
        for occurrence in self._repo.list_occurrences(template.id):
            if not _is_future_open(occurrence, now):
                kept.append(occurrence)
                continue
            try:
                self._repo.delete_task(occurrence.id)
            except DependentRecordsError as exc:
                logger.warning(
                    "Skipping deletion of occurrence %s of template %s: %s",
                    occurrence.id,
                    template.id,
                    exc,
                )
                kept.append(occurrence)
                continue
            deleted += 1

        if deleted:
            logger.info("Discarded %s future occurrences of template %s", deleted, template.id)
        self._rewind(template, kept, now)
        return deleted

    def _rewind(self, template: TaskEntity, kept: list[TaskEntity], now: datetime) -> None:
        # Survivors in the future stay matched by due date, so only past ones bound the rewind.
        dated = [task.due_date for task in kept if task.due_date is not None and task.due_date <= now]
        last_generated = max(dated) if dated else None
        if last_generated != template.last_generated_date:
            self._repo.update_task(template.id, {"last_generated_date": last_generated})


def _is_future_open(occurrence: TaskEntity, now: datetime) -> bool:
    if occurrence.status in CLOSED_STATUSES:
        return False
    return occurrence.due_date is None or occurrence.due_date > now
