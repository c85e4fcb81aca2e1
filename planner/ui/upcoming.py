from __future__ import annotations

import logging

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from planner.config import SETTINGS
from planner.domain.entities import TaskEntity
from planner.services.task_service import TaskService
from planner.services.timezones import safe_zone, to_local_datetime

logger = logging.getLogger(__name__)

PRIORITY_LABELS = {0: "Low", 1: "Medium", 2: "High"}

PRIORITY_COLORS = {
    0: "#7CC4A1",
    1: "#E0B25B",
    2: "#E24A4A",
}


class OccurrenceItemWidget(QWidget):
    def __init__(self, task: TaskEntity, timezone: str):
        super().__init__()
        self.task = task

        self.setObjectName("TaskCard")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 6, 12, 6)
        layout.setSpacing(2)

        title = QLabel(task.name.strip() if task.name else "Untitled")
        title.setProperty("class", "task-title")
        title.setWordWrap(True)

        meta_parts = []
        if task.due_date:
            local_due = to_local_datetime(task.due_date, safe_zone(timezone))
            if local_due.hour or local_due.minute:
                meta_parts.append(local_due.strftime("%H:%M"))
        if task.is_occurrence:
            meta_parts.append("Repeats")
        if task.tags:
            meta_parts.append(", ".join(task.tags))
        meta = QLabel(" | ".join(meta_parts))
        meta.setProperty("class", "task-meta")

        priority = QLabel(PRIORITY_LABELS.get(int(task.priority), "Unknown"))
        priority.setProperty("class", "task-priority")
        priority.setStyleSheet(
            f"background-color: {PRIORITY_COLORS.get(int(task.priority), '#9CA3AF')};"
        )

        header = QHBoxLayout()
        header.addWidget(title, 1)
        header.addWidget(priority, 0, Qt.AlignTop)
        layout.addLayout(header)
        if meta_parts:
            layout.addWidget(meta)


class UpcomingWindow(QWidget):
    def __init__(self, service: TaskService, parent=None):
        super().__init__(parent)
        self.service = service
        self.user_id = SETTINGS.local_user_id
        self.timezone = SETTINGS.default_timezone
        self.language = SETTINGS.default_language

        self.setWindowTitle("Upcoming")
        self.resize(720, 760)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        toolbar = QHBoxLayout()
        heading = QLabel("Upcoming")
        heading.setProperty("class", "panel-title")
        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.refresh)
        self.done_button = QPushButton("Mark done")
        self.done_button.clicked.connect(self.mark_done)
        toolbar.addWidget(heading, 1)
        toolbar.addWidget(self.refresh_button)
        toolbar.addWidget(self.done_button)
        layout.addLayout(toolbar)

        self.list_widget = QListWidget()
        self.list_widget.currentItemChanged.connect(self.on_selected)
        layout.addWidget(self.list_widget, 1)

        self.preview_label = QLabel()
        self.preview_label.setProperty("class", "task-meta")
        self.preview_label.setWordWrap(True)
        layout.addWidget(self.preview_label)

        self.refresh()

    def refresh(self) -> None:
        self.list_widget.clear()
        groups = self.service.list_upcoming(
            self.user_id,
            timezone=self.timezone,
            days=SETTINGS.upcoming_view_days,
            sort_order="priority:desc",
            language=self.language,
        )
        for label, tasks in groups.items():
            header = QListWidgetItem(label)
            header.setFlags(Qt.NoItemFlags)
            header.setData(Qt.UserRole, None)
            self.list_widget.addItem(header)
            for task in tasks:
                item = QListWidgetItem()
                item.setData(Qt.UserRole, task.id)
                widget = OccurrenceItemWidget(task, self.timezone)
                item.setSizeHint(widget.sizeHint())
                self.list_widget.addItem(item)
                self.list_widget.setItemWidget(item, widget)
        self.preview_label.clear()

    def on_selected(self, current: QListWidgetItem | None, _previous=None) -> None:
        task_id = current.data(Qt.UserRole) if current else None
        if not task_id:
            self.preview_label.clear()
            return
        task = self.service.get_task(task_id)
        template_id = task.recurring_parent_id if task else None
        if not template_id:
            self.preview_label.clear()
            return
        upcoming = self.service.preview_iterations(
            template_id, timezone=self.timezone, count=SETTINGS.preview_count
        )
        self.preview_label.setText(
            "Next: " + ", ".join(day.strftime("%d.%m.%Y") for day in upcoming)
        )

    def mark_done(self) -> None:
        item = self.list_widget.currentItem()
        task_id = item.data(Qt.UserRole) if item else None
        if not task_id:
            return
        try:
            self.service.mark_done(task_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to complete task %s", task_id)
            QMessageBox.critical(self, "Error", str(exc))
            return
        self.refresh()
