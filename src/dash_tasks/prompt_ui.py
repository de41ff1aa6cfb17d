"""Interactive pickers and the create form.

Selection goes through the InquirerPy selectors when they can run and falls
back to a numbered list read with ``typer.prompt`` otherwise.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Sequence

import typer

from .filters import is_next, is_urgent
from .models import DEFAULT_PRIORITY, DEFAULT_STATUS, VALID_PRIORITIES, VALID_STATUSES, Task
from .selector_ui import SelectorUnavailableError, ask_text, pick

Option = tuple[str, str]


def _typed_input(message: str, *, default: str = "") -> str | None:
    try:
        return ask_text(message, default=default)
    except SelectorUnavailableError:
        pass
    try:
        return typer.prompt(message, default=default, show_default=bool(default))
    except (typer.Abort, KeyboardInterrupt, EOFError):
        return None


def _choose_by_number(heading: str, options: Sequence[Option], default: str | None = None) -> str | None:
    """Numbered fallback; ``0`` cancels and bad input asks again."""
    values = [value for value, _ in options]
    default_number = values.index(default) + 1 if default in values else 1

    typer.echo(heading)
    for number, (_, label) in enumerate(options, start=1):
        typer.echo(f"{number:>2}. {label}")
    typer.echo(" 0. cancel")

    while True:
        raw = _typed_input("number", default=str(default_number))
        if raw is None:
            return None
        raw = raw.strip()
        if raw.isdigit() and int(raw) <= len(options):
            number = int(raw)
            return values[number - 1] if number else None
        typer.echo(f"Enter a number from 0 to {len(options)}.")


def _choose(
    heading: str,
    options: Sequence[Option],
    *,
    default: str | None = None,
    searchable: bool = False,
) -> str | None:
    if not options:
        return None
    try:
        return pick(heading, options, default=default, searchable=searchable)
    except SelectorUnavailableError as exc:
        typer.echo(f"Warning: {exc}; using numbered prompts.", err=True)
    return _choose_by_number(heading, options, default)


def task_label(task: Task, now: dt.datetime) -> str:
    """One-line picker label, flagging urgent and next tasks as of ``now``."""
    parts = [f"#{task.id} {task.title}", f"{task.status}/{task.priority}"]
    if task.deadline is not None:
        parts.append(f"due {task.deadline:%Y-%m-%d %H:%M}")
    if is_urgent(task, now):
        parts.append("!urgent")
    elif is_next(task, now):
        parts.append("next")
    return "  ".join(parts)


def choose_task(
    tasks: list[Task],
    title: str = "Select task",
    now: dt.datetime | None = None,
) -> int | None:
    when = now or dt.datetime.now()
    options = [(str(task.id), task_label(task, when)) for task in tasks]
    selected = _choose(title, options, searchable=True)
    return int(selected) if selected is not None else None


def choose_command(commands: list[tuple[str, str]], title: str = "Select command") -> str | None:
    options = [(name, f"{name:<10}  {summary}".rstrip()) for name, summary in commands]
    return _choose(title, options, default=commands[0][0] if commands else None)


def create_form(default_title: str | None = None) -> dict[str, Any] | None:
    title = _typed_input("title", default=default_title or "")
    if title is None:
        return None
    description = _typed_input("description")
    if description is None:
        return None
    priority = _choose("priority", [(p, p) for p in VALID_PRIORITIES], default=DEFAULT_PRIORITY)
    if priority is None:
        return None
    status = _choose("status", [(s, s) for s in VALID_STATUSES], default=DEFAULT_STATUS)
    if status is None:
        return None
    deadline = _typed_input("deadline (YYYY-MM-DD[THH:MM], +Nd, +Nh, blank for none)")
    if deadline is None:
        return None
    return {
        "title": title.strip(),
        "description": description.strip() or None,
        "priority": priority,
        "status": status,
        "deadline": deadline.strip() or None,
    }
