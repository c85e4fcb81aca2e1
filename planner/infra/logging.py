from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from planner.config import SETTINGS, PROJECT_ROOT

LOG_FILE_NAME = "planner.log"


def setup_logging(log_dir: Path | None = None, level: str | None = None) -> Path:
    log_dir = log_dir or PROJECT_ROOT / SETTINGS.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    if any(getattr(handler, "baseFilename", None) == str(log_file) for handler in root.handlers):
        return log_file

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root.addHandler(file_handler)
    root.addHandler(console_handler)
    root.setLevel(logging.WARNING)
    # LOG_LEVEL applies to planner's own loggers; SQLAlchemy and Qt stay at WARNING.
    logging.getLogger("planner").setLevel((level or SETTINGS.log_level).upper())
    return log_file
