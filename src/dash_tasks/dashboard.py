"""Dashboard aggregation over a full task snapshot."""

from __future__ import annotations

import datetime as dt
from typing import Iterable

from .models import SECONDS_PER_DAY, VALID_PRIORITIES, VALID_STATUSES, DashboardStats, Task
from .predicates import has_deadline_within, is_finished, priority_is
from .windows import DUE_SOON_DAYS


def completion_days(task: Task) -> float | None:
    if task.created_at is None or task.finished_at is None:
        return None
    return (task.finished_at - task.created_at).total_seconds() / SECONDS_PER_DAY


def compute_dashboard_stats(tasks: Iterable[Task], now: dt.datetime) -> DashboardStats:
    """Count and summarize ``tasks`` as seen at ``now``.

    The due-soon and high-priority-urgent counts include
    finished tasks, unlike ``filters.get_urgent_tasks``.
    """
    by_status = {status: 0 for status in VALID_STATUSES}
    by_priority = {priority: 0 for priority in VALID_PRIORITIES}
    total = 0
    finished = 0
    due_soon = 0
    high_urgent = 0
    spans: list[float] = []

    for task in tasks:
        total += 1
        by_status[task.status] = by_status.get(task.status, 0) + 1
        by_priority[task.priority] = by_priority.get(task.priority, 0) + 1

        if is_finished(task):
            finished += 1
            span = completion_days(task)
            if span is not None:
                spans.append(span)

        if has_deadline_within(task, now, DUE_SOON_DAYS):
            due_soon += 1
            if priority_is(task, "HIGH"):
                high_urgent += 1

    average = sum(spans) / len(spans) if spans else None
    return DashboardStats(
        total_tasks=total,
        total_finished_tasks=finished,
        tasks_by_status=by_status,
        tasks_by_priority=by_priority,
        average_completion_time_days=average,
        tasks_due_soon=due_soon,
        high_priority_urgent_count=high_urgent,
    )
