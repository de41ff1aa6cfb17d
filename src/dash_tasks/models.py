"""Core task models and constants."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import datetime as dt
from typing import Any

VALID_STATUSES = ("TODO", "IN_PROGRESS", "FINISHED", "IDEA", "NEXT")
VALID_PRIORITIES = ("HIGH", "MEDIUM", "LOW")
CLOSED_STATUSES = frozenset({"FINISHED", "IDEA"})

DEFAULT_STATUS = "TODO"
DEFAULT_PRIORITY = "MEDIUM"

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    priority: str
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime
    description: str | None = None
    deadline: dt.datetime | None = None
    finished_at: dt.datetime | None = None


@dataclass(frozen=True, slots=True)
class TaskFilter:
    status: str | None = None
    priority: str | None = None
    due_within_days: int | None = None
    high_priority_urgent: bool | None = None

    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.priority is None
            and self.due_within_days is None
            and not self.high_priority_urgent
        )


@dataclass(slots=True)
class DashboardStats:
    total_tasks: int
    total_finished_tasks: int
    tasks_by_status: dict[str, int] = field(default_factory=dict)
    tasks_by_priority: dict[str, int] = field(default_factory=dict)
    average_completion_time_days: float | None = None
    tasks_due_soon: int = 0
    high_priority_urgent_count: int = 0

    @property
    def completion_rate(self) -> int:
        """Finished share of all tasks as a percentage, halves rounded up."""
        if self.total_tasks <= 0:
            return 0
        return (200 * self.total_finished_tasks + self.total_tasks) // (2 * self.total_tasks)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["completion_rate"] = self.completion_rate
        return payload


class TaskError(Exception):
    """Base error for task operations."""


class TaskValidationError(TaskError):
    """Raised when task fields or filter values are invalid."""


class TaskNotFoundError(TaskError):
    """Raised when a task cannot be located."""


class TaskStoreError(TaskError):
    """Raised when the task file cannot be read back."""
