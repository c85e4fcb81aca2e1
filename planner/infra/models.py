from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


OCCURRENCE_DUE_CONSTRAINT = "uq_tasks_occurrence_due"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


task_tags = Table(
    "task_tags",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class TagModel(Base):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String(100), nullable=False)


class TaskModel(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint("recurring_parent_id", "due_date", name=OCCURRENCE_DUE_CONSTRAINT),
        Index("ix_tasks_user_recurrence", "user_id", "recurrence_type"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    note = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="not_started", index=True)
    priority = Column(Integer, nullable=False, default=0)
    project_id = Column(Integer, nullable=True, index=True)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)
    recurrence_type = Column(String(20), nullable=False, default="none")
    recurrence_interval = Column(Integer, nullable=False, default=1)
    recurrence_end_date = Column(DateTime, nullable=True)
    recurrence_weekday = Column(Integer, nullable=True)
    recurrence_weekdays = Column(Text, nullable=True)
    recurrence_month_day = Column(Integer, nullable=True)
    recurrence_week_of_month = Column(Integer, nullable=True)
    completion_based = Column(Boolean, nullable=False, default=False)
    last_generated_date = Column(DateTime, nullable=True)
    recurring_parent_id = Column(
        Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True, index=True
    )

    tags = relationship(TagModel, secondary=task_tags, lazy="selectin", order_by=TagModel.name)


class SubtaskModel(Base):
    __tablename__ = "subtasks"

    id = Column(Integer, primary_key=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_done = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
