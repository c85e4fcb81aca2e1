from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    upcoming_horizon_days: int = 7
    upcoming_view_days: int = 14
    default_timezone: str = "UTC"
    default_language: str = "en"
    preview_count: int = 6
    local_user_id: int = 1


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Create a .env file with your connection string.")

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    upcoming_horizon_days=int(os.getenv("UPCOMING_HORIZON_DAYS", "7")),
    upcoming_view_days=int(os.getenv("UPCOMING_VIEW_DAYS", "14")),
    default_timezone=os.getenv("DEFAULT_TIMEZONE", "UTC").strip() or "UTC",
    default_language=os.getenv("DEFAULT_LANGUAGE", "en").strip() or "en",
    preview_count=int(os.getenv("PREVIEW_COUNT", "6")),
    local_user_id=int(os.getenv("LOCAL_USER_ID", "1")),
)
