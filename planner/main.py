from __future__ import annotations

import sys

from PySide6.QtGui import QColor, QFont, QPalette
from PySide6.QtWidgets import QApplication, QMessageBox, QStyleFactory

from planner.config import SETTINGS
from planner.infra.db import init_db
from planner.infra.logging import setup_logging
from planner.infra.repository import TaskRepository
from planner.services.grouping import OccurrenceGrouping
from planner.services.locales import build_locale_registry
from planner.services.locks import UserLockProvider
from planner.services.materializer import InstanceMaterializer
from planner.services.recurrence import RecurrenceCalculator
from planner.services.task_service import TaskService
from planner.ui.upcoming import UpcomingWindow


def _apply_dark_palette(app: QApplication) -> None:
    palette = QPalette()
    palette.setColor(QPalette.Window, QColor("#0F172A"))
    palette.setColor(QPalette.WindowText, QColor("#E6EDF3"))
    palette.setColor(QPalette.Base, QColor("#111827"))
    palette.setColor(QPalette.AlternateBase, QColor("#1B2230"))
    palette.setColor(QPalette.Text, QColor("#E6EDF3"))
    palette.setColor(QPalette.Button, QColor("#202A3B"))
    palette.setColor(QPalette.ButtonText, QColor("#E6EDF3"))
    palette.setColor(QPalette.Highlight, QColor("#2563EB"))
    palette.setColor(QPalette.HighlightedText, QColor("#FFFFFF"))
    app.setPalette(palette)


def build_service() -> TaskService:
    repo = TaskRepository()
    calculator = RecurrenceCalculator()
    materializer = InstanceMaterializer(
        repo,
        calculator,
        locks=UserLockProvider(),
        default_timezone=SETTINGS.default_timezone,
    )
    grouping = OccurrenceGrouping(build_locale_registry(SETTINGS.default_language))
    return TaskService(
        repo,
        materializer=materializer,
        grouping=grouping,
        calculator=calculator,
        horizon_days=SETTINGS.upcoming_horizon_days,
    )


def main() -> None:
    setup_logging()
    try:
        init_db()
    except Exception as exc:  # noqa: BLE001
        app = QApplication(sys.argv)
        QMessageBox.critical(None, "DB error", str(exc))
        return

    app = QApplication(sys.argv)
    app.setStyle(QStyleFactory.create("Fusion"))
    _apply_dark_palette(app)
    app.setFont(QFont("Bahnschrift", 10))

    window = UpcomingWindow(build_service())
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
