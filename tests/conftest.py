from __future__ import annotations

import os
import threading
from dataclasses import fields, replace
from datetime import datetime
from typing import Iterator

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from planner.domain.entities import SubtaskEntity, TaskEntity, normalize_weekdays
from planner.domain.enums import CLOSED_STATUSES, RecurrenceType, TaskStatus
from planner.domain.errors import DependentRecordsError, DuplicateOccurrenceError
from planner.domain.filters import TaskFilters
from planner.infra.db import Base
from planner.infra.repository import TaskRepository

# Monday
NOW = datetime(2024, 1, 1, 9, 0)

_TASK_FIELDS = {field.name for field in fields(TaskEntity)}


class FakeRepo:
    def __init__(self) -> None:
        self.tasks: list[TaskEntity] = []
        self.subtasks: list[SubtaskEntity] = []
        self.create_hook = None
        self._id = 1
        self._lock = threading.Lock()

    def _build(self, data: dict) -> TaskEntity:
        values = {key: value for key, value in data.items() if key in _TASK_FIELDS}
        values["status"] = TaskStatus(values.get("status", TaskStatus.NOT_STARTED))
        values["recurrence_type"] = RecurrenceType(values.get("recurrence_type", RecurrenceType.NONE))
        values["tags"] = tuple(values.get("tags") or ())
        if "recurrence_weekdays" in values:
            values["recurrence_weekdays"] = normalize_weekdays(values["recurrence_weekdays"])
        values.setdefault("user_id", 1)
        values.setdefault("name", "")
        values.setdefault("created_at", NOW)
        return TaskEntity(id=self._id, **values)

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        tasks = [t for t in self.tasks if filters.user_id is None or t.user_id == filters.user_id]
        if filters.filter_key == "upcoming":
            tasks = [
                t for t in tasks
                if t.status not in CLOSED_STATUSES and not t.is_template and t.due_date is not None
            ]
        if filters.due_from is not None:
            tasks = [t for t in tasks if t.due_date is not None and t.due_date >= filters.due_from]
        if filters.due_until is not None:
            tasks = [t for t in tasks if t.due_date is not None and t.due_date < filters.due_until]
        return tasks

    def get_task(self, task_id: int) -> TaskEntity | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def create_task(self, data: dict) -> TaskEntity:
        if self.create_hook is not None:
            self.create_hook(data)
        with self._lock:
            parent_id = data.get("recurring_parent_id")
            if parent_id is not None and any(
                t.recurring_parent_id == parent_id and t.due_date == data.get("due_date")
                for t in self.tasks
            ):
                raise DuplicateOccurrenceError(parent_id, data.get("due_date"))
            task = self._build(data)
            self.tasks.append(task)
            self._id += 1
            return task

    def update_task(self, task_id: int, data: dict) -> TaskEntity | None:
        task = self.get_task(task_id)
        if not task:
            return None
        values = {key: value for key, value in data.items() if key in _TASK_FIELDS}
        if "status" in values:
            values["status"] = TaskStatus(values["status"])
        if "recurrence_type" in values:
            values["recurrence_type"] = RecurrenceType(values["recurrence_type"])
        if "tags" in values:
            values["tags"] = tuple(values["tags"] or ())
        if "recurrence_weekdays" in values:
            values["recurrence_weekdays"] = normalize_weekdays(values["recurrence_weekdays"])
        with self._lock:
            updated = replace(self.get_task(task_id) or task, **values)
            self.tasks = [updated if t.id == task_id else t for t in self.tasks]
        return updated

    def delete_task(self, task_id: int) -> None:
        if any(s.task_id == task_id for s in self.subtasks):
            raise DependentRecordsError(task_id, "subtasks reference this task")
        with self._lock:
            self.tasks = [t for t in self.tasks if t.id != task_id]

    def list_templates(self, user_id: int) -> list[TaskEntity]:
        return [
            t for t in self.tasks
            if t.user_id == user_id
            and t.is_template
            and t.status not in (TaskStatus.ARCHIVED, TaskStatus.CANCELLED)
        ]

    def list_occurrences(self, template_id: int) -> list[TaskEntity]:
        return [t for t in self.tasks if t.recurring_parent_id == template_id]

    def occurrence_exists(self, template_id: int, start: datetime, end: datetime) -> bool:
        return any(
            t.recurring_parent_id == template_id and t.due_date is not None and start <= t.due_date < end
            for t in self.tasks
        )

    def detach_occurrences(self, template_id: int) -> int:
        count = 0
        for task in self.list_occurrences(template_id):
            self.update_task(task.id, {"recurring_parent_id": None})
            count += 1
        return count

    def add_subtask(self, task_id: int, name: str) -> SubtaskEntity:
        subtask = SubtaskEntity(id=len(self.subtasks) + 1, task_id=task_id, name=name, is_done=False, created_at=NOW)
        self.subtasks.append(subtask)
        return subtask


@pytest.fixture
def repo() -> FakeRepo:
    return FakeRepo()


@pytest.fixture
def sql_repo() -> Iterator[TaskRepository]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield TaskRepository(sessionmaker(bind=engine, autoflush=False, autocommit=False))
    engine.dispose()
