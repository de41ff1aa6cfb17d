"""Task filtering and the urgent/next special views."""

from __future__ import annotations

import datetime as dt
from typing import Iterable

from .models import Task, TaskFilter
from .predicates import (
    deadline_at_or_before,
    has_deadline_within,
    has_no_deadline,
    is_finished,
    is_open,
    priority_is,
    status_is,
)
from .windows import DUE_SOON_DAYS, window_end


def matches_filter(task: Task, task_filter: TaskFilter, now: dt.datetime) -> bool:
    if task_filter.status is not None and not status_is(task, task_filter.status):
        return False
    if task_filter.priority is not None and not priority_is(task, task_filter.priority):
        return False
    if task_filter.due_within_days is not None:
        if not has_deadline_within(task, now, task_filter.due_within_days):
            return False
    if task_filter.high_priority_urgent:
        if not (priority_is(task, "HIGH") and has_deadline_within(task, now, DUE_SOON_DAYS)):
            return False
    return True


def filter_tasks(tasks: Iterable[Task], task_filter: TaskFilter, now: dt.datetime) -> list[Task]:
    """Return tasks matching every populated filter field, in input order."""
    task_list = list(tasks)
    if task_filter.is_empty():
        return task_list
    return [task for task in task_list if matches_filter(task, task_filter, now)]


def is_urgent(task: Task, now: dt.datetime) -> bool:
    return (
        priority_is(task, "HIGH")
        and not is_finished(task)
        and has_deadline_within(task, now, DUE_SOON_DAYS)
    )


def get_urgent_tasks(tasks: Iterable[Task], now: dt.datetime) -> list[Task]:
    return [task for task in tasks if is_urgent(task, now)]


def is_next(task: Task, now: dt.datetime) -> bool:
    """Derived "next" membership; a stored NEXT status is not trusted."""
    if not is_open(task):
        return False
    horizon = window_end(now, DUE_SOON_DAYS)
    high = priority_is(task, "HIGH")
    # Clause two subsumes clause one.
    return (
        (high and deadline_at_or_before(task, horizon))
        or deadline_at_or_before(task, horizon)
        or (high and has_no_deadline(task))
    )


def get_next_tasks(tasks: Iterable[Task], now: dt.datetime) -> list[Task]:
    return [task for task in tasks if is_next(task, now)]
