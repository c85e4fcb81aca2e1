from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from planner.domain.entities import SubtaskEntity, TaskEntity, normalize_weekdays
from planner.domain.enums import CLOSED_STATUSES, INACTIVE_STATUSES, RecurrenceType, TaskStatus
from planner.domain.errors import DependentRecordsError, DuplicateOccurrenceError
from planner.domain.filters import TaskFilters

from .db import SessionLocal
from .models import OCCURRENCE_DUE_CONSTRAINT, SubtaskModel, TagModel, TaskModel

logger = logging.getLogger(__name__)

CLOSED_VALUES = [status.value for status in CLOSED_STATUSES]
INACTIVE_VALUES = [status.value for status in INACTIVE_STATUSES]


def _parse_weekdays(raw: str | None, task_id: int) -> tuple[int, ...] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed recurrence_weekdays on task %s: %r", task_id, raw)
        return None
    weekdays = normalize_weekdays(parsed if isinstance(parsed, list) else None)
    if weekdays is None:
        logger.warning("Ignoring malformed recurrence_weekdays on task %s: %r", task_id, raw)
    return weekdays


def _is_duplicate_occurrence(exc: IntegrityError) -> bool:
    diag = getattr(exc.orig, "diag", None)
    if getattr(diag, "constraint_name", None) == OCCURRENCE_DUE_CONSTRAINT:
        return True
    # SQLite names the columns instead of the constraint.
    message = str(exc.orig)
    return (
        OCCURRENCE_DUE_CONSTRAINT in message
        or "tasks.recurring_parent_id, tasks.due_date" in message
    )


def _to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        user_id=model.user_id,
        name=model.name,
        status=TaskStatus(model.status),
        priority=model.priority,
        note=model.note,
        project_id=model.project_id,
        due_date=model.due_date,
        tags=tuple(tag.name for tag in model.tags),
        created_at=model.created_at,
        updated_at=model.updated_at,
        completed_at=model.completed_at,
        recurrence_type=RecurrenceType(model.recurrence_type),
        recurrence_interval=model.recurrence_interval,
        recurrence_end_date=model.recurrence_end_date,
        recurrence_weekday=model.recurrence_weekday,
        recurrence_weekdays=_parse_weekdays(model.recurrence_weekdays, model.id),
        recurrence_month_day=model.recurrence_month_day,
        recurrence_week_of_month=model.recurrence_week_of_month,
        completion_based=model.completion_based,
        last_generated_date=model.last_generated_date,
        recurring_parent_id=model.recurring_parent_id,
    )


def _apply_filters(stmt, filters: TaskFilters) -> object:
    if filters.user_id is not None:
        stmt = stmt.where(TaskModel.user_id == filters.user_id)

    if filters.filter_key == "upcoming":
        stmt = stmt.where(
            TaskModel.status.notin_(CLOSED_VALUES),
            or_(
                TaskModel.recurrence_type == RecurrenceType.NONE.value,
                TaskModel.recurring_parent_id.is_not(None),
            ),
            TaskModel.due_date.is_not(None),
        )
    elif filters.filter_key == "templates":
        stmt = stmt.where(
            TaskModel.recurrence_type != RecurrenceType.NONE.value,
            TaskModel.recurring_parent_id.is_(None),
        )
    elif filters.filter_key in {status.value for status in TaskStatus}:
        stmt = stmt.where(TaskModel.status == filters.filter_key)

    if filters.due_from is not None:
        stmt = stmt.where(TaskModel.due_date >= filters.due_from)
    if filters.due_until is not None:
        stmt = stmt.where(TaskModel.due_date < filters.due_until)

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                TaskModel.name.ilike(pattern),
                TaskModel.note.ilike(pattern),
            )
        )

    return stmt


class TaskRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel)
            stmt = _apply_filters(stmt, filters)
            stmt = stmt.order_by(
                TaskModel.due_date.is_(None),
                TaskModel.due_date.asc(),
                TaskModel.priority.desc(),
                TaskModel.created_at.desc(),
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            return _to_entity(task) if task else None

    def create_task(self, data: dict) -> TaskEntity:
        data = dict(data)
        tag_names = data.pop("tags", None) or ()
        with self._session_factory() as session:
            task = TaskModel(**self._column_values(data))
            task.tags = self._resolve_tags(session, task.user_id, tag_names)
            session.add(task)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if data.get("recurring_parent_id") is not None and _is_duplicate_occurrence(exc):
                    raise DuplicateOccurrenceError(data["recurring_parent_id"], data.get("due_date")) from exc
                raise
            session.refresh(task)
            return _to_entity(task)

    def update_task(self, task_id: int, data: dict) -> Optional[TaskEntity]:
        data = dict(data)
        tag_names = data.pop("tags", None)
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return None

            for key, value in self._column_values(data).items():
                setattr(task, key, value)
            if tag_names is not None:
                task.tags = self._resolve_tags(session, task.user_id, tag_names)
            session.commit()
            session.refresh(task)
            return _to_entity(task)

    def delete_task(self, task_id: int) -> None:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return
            session.delete(task)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DependentRecordsError(task_id, str(exc.orig)) from exc

    def list_templates(self, user_id: int) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskModel)
                .where(
                    TaskModel.user_id == user_id,
                    TaskModel.recurrence_type != RecurrenceType.NONE.value,
                    TaskModel.recurring_parent_id.is_(None),
                    TaskModel.status.notin_(INACTIVE_VALUES),
                )
                .order_by(TaskModel.id.asc())
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def list_occurrences(self, template_id: int) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskModel)
                .where(TaskModel.recurring_parent_id == template_id)
                .order_by(TaskModel.due_date.asc())
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def occurrence_exists(self, template_id: int, start: datetime, end: datetime) -> bool:
        with self._session_factory() as session:
            found = session.scalar(
                select(TaskModel.id)
                .where(
                    TaskModel.recurring_parent_id == template_id,
                    TaskModel.due_date >= start,
                    TaskModel.due_date < end,
                )
                .limit(1)
            )
            return found is not None

    def detach_occurrences(self, template_id: int) -> int:
        with self._session_factory() as session:
            result = session.execute(
                update(TaskModel)
                .where(TaskModel.recurring_parent_id == template_id)
                .values(recurring_parent_id=None)
            )
            session.commit()
            return result.rowcount or 0

    def add_subtask(self, task_id: int, name: str) -> SubtaskEntity:
        with self._session_factory() as session:
            subtask = SubtaskModel(task_id=task_id, name=name)
            session.add(subtask)
            session.commit()
            session.refresh(subtask)
            return SubtaskEntity(
                id=subtask.id,
                task_id=subtask.task_id,
                name=subtask.name,
                is_done=subtask.is_done,
                created_at=subtask.created_at,
            )

    @staticmethod
    def _column_values(data: dict) -> dict:
        values = dict(data)
        if "recurrence_weekdays" in values:
            weekdays = normalize_weekdays(values["recurrence_weekdays"])
            values["recurrence_weekdays"] = json.dumps(list(weekdays)) if weekdays else None
        return values

    @staticmethod
    def _resolve_tags(session: Session, user_id: int, names) -> list[TagModel]:
        tags = []
        for name in dict.fromkeys(name.strip() for name in names if name and name.strip()):
            tag = session.scalar(
                select(TagModel).where(TagModel.user_id == user_id, TagModel.name == name)
            )
            if tag is None:
                tag = TagModel(user_id=user_id, name=name)
                session.add(tag)
            tags.append(tag)
        return tags
