"""Business logic for the task lifecycle and the dashboard views."""

from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import re
from typing import Any, Callable

from .dashboard import compute_dashboard_stats
from .filters import filter_tasks, get_next_tasks, get_urgent_tasks
from .models import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    VALID_PRIORITIES,
    VALID_STATUSES,
    DashboardStats,
    Task,
    TaskFilter,
    TaskNotFoundError,
    TaskValidationError,
)
from .storage import TaskRepository

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def _now() -> dt.datetime:
    return dt.datetime.now()


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise TaskValidationError("title is required")
    return cleaned


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip() or None


def validate_status(status: str) -> str:
    if status not in VALID_STATUSES:
        raise TaskValidationError(
            f"Invalid status: {status}. Expected one of {', '.join(VALID_STATUSES)}"
        )
    return status


def validate_priority(priority: str) -> str:
    if priority not in VALID_PRIORITIES:
        raise TaskValidationError(
            f"Invalid priority: {priority}. Expected one of {', '.join(VALID_PRIORITIES)}"
        )
    return priority


RELATIVE_DEADLINE_RE = re.compile(r"^\+(\d+)([dh])$")


def parse_deadline(raw: str, now: dt.datetime) -> dt.datetime:
    """Parse ``+3d`` / ``+12h`` relative to ``now`` or an ISO 8601 date/datetime."""
    text = raw.strip()
    match = RELATIVE_DEADLINE_RE.fullmatch(text)
    if match:
        amount = int(match.group(1))
        unit = "days" if match.group(2) == "d" else "hours"
        return now + dt.timedelta(**{unit: amount})
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError as exc:
        raise TaskValidationError(
            f"Invalid deadline: {raw!r}. Use YYYY-MM-DD, YYYY-MM-DDTHH:MM, +Nd or +Nh"
        ) from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def validate_filter(task_filter: TaskFilter) -> TaskFilter:
    if task_filter.status is not None:
        validate_status(task_filter.status)
    if task_filter.priority is not None:
        validate_priority(task_filter.priority)
    days = task_filter.due_within_days
    if days is not None:
        if isinstance(days, bool) or not isinstance(days, int):
            raise TaskValidationError("due_within_days must be an integer")
        if days < 0:
            raise TaskValidationError("due_within_days must be non-negative")
    return task_filter


class TaskService:
    def __init__(
        self,
        repository: TaskRepository,
        *,
        clock: Callable[[], dt.datetime] | None = None,
    ) -> None:
        self.repository = repository
        self._clock = clock or _now

    def now(self) -> dt.datetime:
        return self._clock()

    def _load(self) -> list[Task]:
        return self.repository.load_tasks()

    def _find(self, tasks: list[Task], task_id: int) -> int:
        for idx, task in enumerate(tasks):
            if task.id == task_id:
                return idx
        raise TaskNotFoundError(f"Task not found: {task_id}")

    def get_task(self, task_id: int) -> Task:
        tasks = self._load()
        return tasks[self._find(tasks, task_id)]

    def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        task_filter = validate_filter(task_filter or TaskFilter())
        now = self.now()
        return filter_tasks(self._load(), task_filter, now)

    def urgent_tasks(self) -> list[Task]:
        return get_urgent_tasks(self._load(), self.now())

    def next_tasks(self) -> list[Task]:
        return get_next_tasks(self._load(), self.now())

    def dashboard_stats(self) -> DashboardStats:
        return compute_dashboard_stats(self._load(), self.now())

    def create_task(
        self,
        title: str,
        *,
        description: str | None = None,
        priority: str = DEFAULT_PRIORITY,
        status: str = DEFAULT_STATUS,
        deadline: dt.datetime | None = None,
    ) -> Task:
        cleaned_title = _clean_title(title)
        validate_priority(priority)
        validate_status(status)

        now = self.now()
        task = Task(
            id=self.repository.allocate_id(),
            title=cleaned_title,
            description=_clean_description(description),
            priority=priority,
            status=status,
            deadline=deadline,
            created_at=now,
            updated_at=now,
            finished_at=now if status == "FINISHED" else None,
        )
        tasks = self._load()
        tasks.append(task)
        self.repository.save_tasks(tasks)
        logger.info("Created task %d (%s)", task.id, task.status)
        return task

    def update_task(
        self,
        task_id: int,
        *,
        title: str = UNSET,
        description: str | None = UNSET,
        priority: str = UNSET,
        status: str = UNSET,
        deadline: dt.datetime | None = UNSET,
    ) -> Task:
        """Apply the given fields; ``UNSET`` leaves a field unchanged.

        ``finished_at`` follows status transitions: entering FINISHED stamps it,
        leaving FINISHED clears it, re-setting FINISHED keeps the first stamp.
        """
        for name, value in (("title", title), ("priority", priority), ("status", status)):
            if value is None:
                raise TaskValidationError(f"{name} cannot be cleared")

        tasks = self._load()
        idx = self._find(tasks, task_id)
        current = tasks[idx]
        now = self.now()

        changes: dict[str, Any] = {"updated_at": now}
        if title is not UNSET:
            changes["title"] = _clean_title(title)
        if description is not UNSET:
            changes["description"] = _clean_description(description)
        if priority is not UNSET:
            changes["priority"] = validate_priority(priority)
        if deadline is not UNSET:
            changes["deadline"] = deadline
        if status is not UNSET:
            changes["status"] = validate_status(status)
            if status == "FINISHED" and current.status != "FINISHED":
                changes["finished_at"] = now
            elif status != "FINISHED" and current.status == "FINISHED":
                changes["finished_at"] = None

        updated = dataclasses.replace(current, **changes)
        tasks[idx] = updated
        self.repository.save_tasks(tasks)
        logger.info("Updated task %d fields=%s", task_id, sorted(changes))
        return updated

    def start_task(self, task_id: int) -> Task:
        return self.update_task(task_id, status="IN_PROGRESS")

    def finish_task(self, task_id: int) -> Task:
        return self.update_task(task_id, status="FINISHED")

    def delete_task(self, task_id: int) -> Task:
        tasks = self._load()
        removed = tasks.pop(self._find(tasks, task_id))
        self.repository.save_tasks(tasks)
        logger.info("Deleted task %d", task_id)
        return removed
