from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class TaskFilters:
    user_id: int | None = None
    filter_key: str = "all"
    search: str | None = None
    due_from: Optional[datetime] = None
    due_until: Optional[datetime] = None
