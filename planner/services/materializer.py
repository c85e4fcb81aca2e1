"""Creates concrete occurrence rows for recurring templates.

A pass for one user runs under that user's generation lock. For every active
template it fills ``[today, today + horizon]`` with occurrences that are not
already present and advances ``last_generated_date`` as dates are confirmed.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from planner.domain.entities import TaskEntity
from planner.domain.enums import CLOSED_STATUSES, INACTIVE_STATUSES, TaskStatus
from planner.domain.errors import DuplicateOccurrenceError
from planner.infra.repository import TaskRepository

from .locks import LockProvider, UserLockProvider, hold
from .recurrence import RecurrenceCalculator, RecurrenceRule
from .timezones import (
    local_day_bounds_utc,
    local_midnight_utc,
    local_today,
    safe_zone,
    to_local_date,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 7


class InstanceMaterializer:
    def __init__(
        self,
        repo: TaskRepository,
        calculator: RecurrenceCalculator | None = None,
        locks: LockProvider | None = None,
        default_timezone: str = "UTC",
    ) -> None:
        self._repo = repo
        self._calculator = calculator or RecurrenceCalculator()
        self._locks = locks or UserLockProvider()
        self._default_timezone = default_timezone

    def materialize(
        self,
        user_id: int,
        horizon_days: int | None = None,
        timezone: str | None = None,
        now: datetime | None = None,
    ) -> list[TaskEntity]:
        horizon = DEFAULT_HORIZON_DAYS if horizon_days is None else max(int(horizon_days), 0)
        zone = safe_zone(timezone or self._default_timezone)
        now = now or utcnow()

        created: list[TaskEntity] = []
        with hold(self._locks, user_id):
            templates = self._repo.list_templates(user_id)
            for template in templates:
                try:
                    created.extend(self._materialize_template(template, zone, now, horizon))
                except Exception:  # noqa: BLE001
                    logger.exception(
                        "Failed to generate occurrences for template %s of user %s",
                        template.id,
                        user_id,
                    )

        if created:
            logger.info("Generated %s occurrences for user %s", len(created), user_id)
        return created

    def _materialize_template(
        self, template: TaskEntity, zone: ZoneInfo, now: datetime, horizon: int
    ) -> list[TaskEntity]:
        if not template.is_template or template.status in INACTIVE_STATUSES:
            return []

        today = local_today(zone, now)
        if template.recurrence_end_date and to_local_date(template.recurrence_end_date, zone) < today:
            return []
        if template.due_date is None:
            template = self._pin_anchor(template, today, zone)
        rule = RecurrenceRule.from_task(template, zone)

        occurrences = self._repo.list_occurrences(template.id)
        present = {to_local_date(task.due_date, zone) for task in occurrences if task.due_date}
        last_generated = (
            to_local_date(template.last_generated_date, zone)
            if template.last_generated_date
            else None
        )

        horizon_end = today + timedelta(days=horizon)
        if rule.completion_based:
            dates = self._completion_based_dates(rule, template, occurrences, zone, today, horizon_end)
            skip_until = None
        else:
            anchor = to_local_date(template.due_date, zone)
            dates = self._calculator.occurrences(rule, anchor, today, horizon_end)
            skip_until = last_generated

        created: list[TaskEntity] = []
        progress = last_generated
        try:
            for day in dates:
                if skip_until is not None and day <= skip_until:
                    continue
                if day not in present and not self._exists(template.id, day, zone):
                    occurrence = self._create_occurrence(template, day, zone)
                    if occurrence is not None:
                        created.append(occurrence)
                    present.add(day)
                progress = day
        finally:
            if progress is not None and progress != last_generated:
                self._repo.update_task(
                    template.id, {"last_generated_date": local_midnight_utc(progress, zone)}
                )
        return created

    def _completion_based_dates(
        self,
        rule: RecurrenceRule,
        template: TaskEntity,
        occurrences: list[TaskEntity],
        zone: ZoneInfo,
        today: date,
        horizon_end: date,
    ) -> list[date]:
        # The next date depends on when the open occurrence gets completed.
        if any(task.status not in CLOSED_STATUSES for task in occurrences):
            return []

        # Early completion must not land on a date the series already covered.
        history = [to_local_date(task.completed_at, zone) for task in occurrences if task.completed_at]
        history += [to_local_date(task.due_date, zone) for task in occurrences if task.due_date]
        if history:
            next_date = self._calculator.next_occurrence(rule, max(history))
            if next_date is not None and next_date < today:
                next_date = self._calculator.first_occurrence_on_or_after(rule, today)
        else:
            anchor = to_local_date(template.due_date, zone)
            next_date = self._calculator.first_occurrence_on_or_after(rule, max(anchor, today))

        if next_date is None or next_date > horizon_end:
            return []
        return [next_date]

    def _pin_anchor(self, template: TaskEntity, today: date, zone: ZoneInfo) -> TaskEntity:
        """Store today as the series start so later passes keep the same phase."""
        due_date = local_midnight_utc(today, zone)
        self._repo.update_task(template.id, {"due_date": due_date})
        logger.debug("Anchored template %s at %s", template.id, today)
        return replace(template, due_date=due_date)

    def _exists(self, template_id: int, day: date, zone: ZoneInfo) -> bool:
        start, end = local_day_bounds_utc(day, zone)
        return self._repo.occurrence_exists(template_id, start, end)

    def _create_occurrence(self, template: TaskEntity, day: date, zone: ZoneInfo) -> TaskEntity | None:
        try:
            return self._repo.create_task({
                "user_id": template.user_id,
                "name": template.name,
                "note": template.note,
                "priority": int(template.priority),
                "project_id": template.project_id,
                "tags": list(template.tags),
                "status": TaskStatus.NOT_STARTED.value,
                "due_date": local_midnight_utc(day, zone),
                "recurring_parent_id": template.id,
            })
        except DuplicateOccurrenceError:
            logger.warning(
                "Occurrence of template %s on %s already stored, skipping", template.id, day
            )
            return None
