"""Renderers for list, detail, and dashboard command output."""

from __future__ import annotations

import datetime as dt
import json
from typing import Iterable

from .models import VALID_PRIORITIES, VALID_STATUSES, DashboardStats, Task
from .storage import task_to_record
from .windows import DUE_SOON_DAYS


STATUS_ORDER = VALID_STATUSES
STATUS_LABELS = {
    "TODO": "TO-DO",
    "IN_PROGRESS": "IN PROGRESS",
    "FINISHED": "FINISHED",
    "IDEA": "IDEAS",
    "NEXT": "NEXT",
}


def _column_name(column: dict[str, int | str]) -> str:
    return str(column["name"])


def _column_width(column: dict[str, int | str]) -> int:
    return int(column["width"])


def _priority_style(priority: str) -> str:
    return {
        "HIGH": "bold red",
        "MEDIUM": "yellow",
        "LOW": "green",
    }.get(priority, "white")


def _status_style(status: str) -> str:
    return {
        "TODO": "white",
        "IN_PROGRESS": "cyan",
        "FINISHED": "green",
        "IDEA": "magenta",
        "NEXT": "bold yellow",
    }.get(status, "white")


def _short_instant(value: dt.datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


def _task_list_row(task: Task) -> dict[str, str]:
    return {
        "id": str(task.id),
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "deadline": _short_instant(task.deadline),
        "created": _short_instant(task.created_at),
        "finished": _short_instant(task.finished_at),
    }


def _truncate(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(value) <= width:
        return value
    if width == 1:
        return "…"
    return f"{value[: width - 1]}…"


def render_task_list_plain(
    tasks: Iterable[Task],
    columns: list[dict[str, int | str]],
) -> str:
    rows = [_task_list_row(task) for task in tasks]
    if not rows:
        return "No tasks found."

    headers = [_column_name(column) for column in columns]
    widths = {name: _column_width(column) for name, column in zip(headers, columns)}

    lines = []
    lines.append("  ".join(_truncate(name, widths[name]).ljust(widths[name]) for name in headers))
    lines.append("  ".join("-" * widths[name] for name in headers))
    for row in rows:
        lines.append(
            "  ".join(_truncate(row[name], widths[name]).ljust(widths[name]) for name in headers)
        )
    return "\n".join(lines)


def _column_style(name: str) -> str:
    if name == "title":
        return "bold"
    if name in {"id", "created", "finished"}:
        return "dim"
    return ""


def _rich_task_table(tasks: list[Task], columns: list[dict[str, int | str]]):
    from rich import box
    from rich.table import Table
    from rich.text import Text

    table = Table(
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold white",
        pad_edge=False,
    )
    for column in columns:
        name = _column_name(column)
        width = _column_width(column)
        table.add_column(
            name,
            style=_column_style(name),
            min_width=width,
            max_width=width,
            overflow="ellipsis",
            no_wrap=True,
        )

    for task in tasks:
        row = _task_list_row(task)
        rendered: list[str | Text] = []
        for column in columns:
            name = _column_name(column)
            value = row[name]
            if name == "status":
                rendered.append(Text(value, style=_status_style(value)))
            elif name == "priority":
                rendered.append(Text(value, style=_priority_style(value)))
            else:
                rendered.append(value)
        table.add_row(*rendered)
    return table


def render_task_list_rich(
    tasks: Iterable[Task],
    columns: list[dict[str, int | str]],
    *,
    grouped: bool = True,
):
    """Rich task table; ``grouped=False`` keeps the caller's order in one table."""
    from rich.console import Group
    from rich.text import Text

    task_list = list(tasks)
    if not task_list:
        return "No tasks found."
    if not grouped:
        return _rich_task_table(task_list, columns)

    by_status: dict[str, list[Task]] = {status: [] for status in STATUS_ORDER}
    for task in task_list:
        by_status.setdefault(task.status, []).append(task)

    renderables = []
    for status, bucket in by_status.items():
        if not bucket:
            continue
        renderables.append(
            Text(
                f"{STATUS_LABELS.get(status, status)} ({len(bucket)})",
                style=f"bold {_status_style(status)}",
            )
        )
        renderables.append(_rich_task_table(bucket, columns))
        renderables.append(Text(""))

    if renderables and isinstance(renderables[-1], Text) and not renderables[-1].plain:
        renderables.pop()

    return Group(*renderables)


def render_task_list_json(tasks: Iterable[Task]) -> str:
    payload = [task_to_record(task) for task in tasks]
    return json.dumps(payload, indent=2)


def _detail_lines(task: Task) -> list[str]:
    return [
        f"#{task.id} {task.title}",
        f"[{task.status}] [{task.priority}]",
        f"deadline: {_short_instant(task.deadline)}",
        (
            f"created: {_short_instant(task.created_at)}    "
            f"updated: {_short_instant(task.updated_at)}    "
            f"finished: {_short_instant(task.finished_at)}"
        ),
    ]


def _description_text(task: Task) -> str:
    return (task.description or "").strip() or "(no description)"


def render_task_detail_plain(task: Task) -> str:
    return "\n".join([*_detail_lines(task), "", _description_text(task)])


def render_task_detail_rich(task: Task):
    from rich.console import Group
    from rich.text import Text

    title = Text()
    title.append(f"#{task.id} ", style="dim")
    title.append(task.title, style="bold")

    chips = Text()
    chips.append(f"[{task.status}]", style=_status_style(task.status))
    chips.append(" ")
    chips.append(f"[{task.priority}]", style=_priority_style(task.priority))

    _, _, deadline_line, dates_line = _detail_lines(task)
    return Group(
        title,
        chips,
        Text(deadline_line),
        Text(dates_line, style="dim"),
        Text(""),
        Text(_description_text(task)),
    )


def render_task_detail_json(task: Task) -> str:
    return json.dumps(task_to_record(task), indent=2)


def _average_label(stats: DashboardStats) -> str:
    if stats.average_completion_time_days is None:
        return "N/A"
    return f"{stats.average_completion_time_days:.1f}d"


def _summary_rows(stats: DashboardStats) -> list[tuple[str, str]]:
    active = stats.total_tasks - stats.total_finished_tasks
    return [
        ("total tasks", f"{stats.total_tasks} ({active} active, {stats.total_finished_tasks} finished)"),
        ("completion rate", f"{stats.completion_rate}%"),
        (f"due within {DUE_SOON_DAYS}d", str(stats.tasks_due_soon)),
        ("high priority urgent", str(stats.high_priority_urgent_count)),
        ("avg completion", _average_label(stats)),
    ]


def render_dashboard_plain(stats: DashboardStats) -> str:
    summary = _summary_rows(stats)
    label_width = max(len(label) for label, _ in summary)
    lines = [f"{label.ljust(label_width)}  {value}" for label, value in summary]

    lines.append("")
    lines.append("by status")
    for status in VALID_STATUSES:
        lines.append(f"  {status.ljust(11)}  {stats.tasks_by_status.get(status, 0)}")
    lines.append("")
    lines.append("by priority")
    for priority in VALID_PRIORITIES:
        lines.append(f"  {priority.ljust(11)}  {stats.tasks_by_priority.get(priority, 0)}")
    return "\n".join(lines)


def render_dashboard_rich(stats: DashboardStats):
    from rich import box
    from rich.console import Group
    from rich.table import Table
    from rich.text import Text

    summary = Table(box=box.SIMPLE_HEAVY, show_header=False, pad_edge=False)
    summary.add_column("metric", style="bold")
    summary.add_column("value", justify="right")
    for label, value in _summary_rows(stats):
        style = ""
        if label == "high priority urgent" and stats.high_priority_urgent_count > 0:
            style = "bold red"
        elif label.startswith("due within") and stats.tasks_due_soon > 0:
            style = "yellow"
        summary.add_row(label, Text(value, style=style))

    breakdown = Table(
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold white",
        pad_edge=False,
    )
    breakdown.add_column("status")
    breakdown.add_column("count", justify="right")
    breakdown.add_column("priority")
    breakdown.add_column("count", justify="right")
    for index in range(max(len(VALID_STATUSES), len(VALID_PRIORITIES))):
        cells: list[str | Text] = ["", "", "", ""]
        if index < len(VALID_STATUSES):
            status = VALID_STATUSES[index]
            cells[0] = Text(status, style=_status_style(status))
            cells[1] = str(stats.tasks_by_status.get(status, 0))
        if index < len(VALID_PRIORITIES):
            priority = VALID_PRIORITIES[index]
            cells[2] = Text(priority, style=_priority_style(priority))
            cells[3] = str(stats.tasks_by_priority.get(priority, 0))
        breakdown.add_row(*cells)

    return Group(Text("Dashboard", style="bold"), summary, breakdown)


def render_dashboard_json(stats: DashboardStats) -> str:
    return json.dumps(stats.to_dict(), indent=2)
