"""Stateless predicates over a single task."""

from __future__ import annotations

import datetime as dt

from .models import CLOSED_STATUSES, Task
from .windows import due_window, in_window


def is_open(task: Task) -> bool:
    return task.status not in CLOSED_STATUSES


def is_finished(task: Task) -> bool:
    return task.status == "FINISHED"


def status_is(task: Task, status: str) -> bool:
    return task.status == status


def priority_is(task: Task, priority: str) -> bool:
    return task.priority == priority


def has_no_deadline(task: Task) -> bool:
    return task.deadline is None


def has_deadline_within(task: Task, now: dt.datetime, days: int) -> bool:
    if task.deadline is None:
        return False
    return in_window(task.deadline, due_window(now, days))


def deadline_at_or_before(task: Task, instant: dt.datetime) -> bool:
    # Overdue deadlines pass; there is no lower bound.
    return task.deadline is not None and task.deadline <= instant
