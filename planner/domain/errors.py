from __future__ import annotations


class PlannerError(Exception):
    """Base class for errors raised by the planner core."""


class DependentRecordsError(PlannerError):
    """A task could not be deleted because other rows still reference it."""

    def __init__(self, task_id: int, detail: str = "") -> None:
        super().__init__(f"task {task_id} has dependent records{': ' + detail if detail else ''}")
        self.task_id = task_id
        self.detail = detail


class DuplicateOccurrenceError(PlannerError):
    """Storage rejected a second occurrence for the same template and due date."""

    def __init__(self, template_id: int, due_date) -> None:
        super().__init__(f"occurrence of template {template_id} due {due_date} already exists")
        self.template_id = template_id
        self.due_date = due_date
