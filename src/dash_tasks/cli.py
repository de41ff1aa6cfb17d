"""CLI entrypoint for dash-tasks."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
import sys
from typing import Annotated, Callable

import click
import typer

from . import render, storage
from .logging_setup import setup_logging
from .models import Task, TaskError, TaskFilter, TaskValidationError
from .prompt_ui import choose_command, choose_task, create_form
from .service import UNSET, TaskService, parse_deadline

NoInteractiveOption = Annotated[
    bool,
    typer.Option("--nointeractive", help="Disable interactive prompts for this command"),
]
TasksRootOption = Annotated[
    Path | None,
    typer.Option("--tasks-root", help="Explicit .dash-tasks path"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Emit JSON instead of a table")]
TaskIdArgument = Annotated[int | None, typer.Argument(help="Task id", show_default=False)]


def _can_interact() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _can_prompt(interactive_enabled: bool) -> bool:
    return interactive_enabled and _can_interact()


def _can_render_rich_output() -> bool:
    return sys.stdout.isatty()


app = typer.Typer(
    help="Deadline-aware task tracker with urgent/next views and a dashboard",
    epilog="Deadlines accept YYYY-MM-DD, YYYY-MM-DDTHH:MM, or relative +Nd / +Nh.",
)


def _print_rich(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _echo_root_notice(root: Path, multiple_found: bool) -> None:
    typer.echo(f"Using tasks root: {root}", err=True)
    if multiple_found:
        typer.echo(
            f"Warning: multiple {storage.ROOT_DIR_NAME} roots found; using nearest ancestor.",
            err=True,
        )


def _warn_config(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _resolve_interactive_enabled(tasks_root: Path | None, nointeractive: bool) -> bool:
    if nointeractive:
        return False
    if tasks_root is None:
        return storage.DEFAULT_INTERACTIVE_ENABLED
    return storage.resolve_interactive_enabled(tasks_root, warn=_warn_config)


def _resolve_existing_root(tasks_root: Path | None) -> Path:
    if tasks_root is not None:
        root = tasks_root.resolve()
        if not root.exists():
            raise typer.BadParameter(f"tasks root not found: {root}")
        return root

    root, multiple = storage.choose_tasks_root(Path.cwd())
    if root is None:
        raise TaskValidationError(
            f"No {storage.ROOT_DIR_NAME} root found from current directory upward. "
            "Run 'dash-tasks init' first."
        )
    _echo_root_notice(root, multiple)
    return root


def _resolve_init_root(tasks_root: Path | None) -> Path:
    if tasks_root is not None:
        return tasks_root.resolve()

    root, multiple = storage.choose_tasks_root(Path.cwd())
    if root is not None:
        _echo_root_notice(root, multiple)
        return root

    default_root = storage.default_init_root(Path.cwd())
    typer.echo(f"No {storage.ROOT_DIR_NAME} found. Initializing at: {default_root}", err=True)
    return default_root


def _root_for_interactive_lookup(tasks_root: Path | None) -> Path | None:
    if tasks_root is not None:
        root = tasks_root.resolve()
        if root.exists():
            return root
        return None
    root, _ = storage.choose_tasks_root(Path.cwd())
    return root


def _service(tasks_root: Path | None = None, *, init: bool = False) -> TaskService:
    root = _resolve_init_root(tasks_root) if init else _resolve_existing_root(tasks_root)
    storage.ensure_layout(root)
    return TaskService(storage.YamlTaskRepository(root))


def _select_task_if_missing(
    svc: TaskService,
    task_id: int | None,
    prompt: str,
    *,
    interactive_enabled: bool,
    candidates: Callable[[Task], bool] | None = None,
) -> int:
    if task_id is not None:
        return task_id
    tasks = svc.list_tasks()
    if candidates is not None:
        tasks = [task for task in tasks if candidates(task)]
    if not tasks:
        raise TaskValidationError("No tasks available.")
    if not _can_prompt(interactive_enabled):
        raise TaskValidationError("task_id is required in non-interactive mode")
    selected = choose_task(tasks, title=prompt, now=svc.now())
    if selected is None:
        _exit_canceled(1)
    return selected


def _normalize_choice(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().upper().replace("-", "_")


def _parse_deadline_option(raw: str | None, svc: TaskService) -> dt.datetime | None:
    if raw is None or not raw.strip():
        return None
    return parse_deadline(raw, svc.now())


def _run_and_handle(fn) -> None:
    try:
        fn()
    except TaskError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _exit_canceled(code: int) -> None:
    typer.echo("Canceled.")
    raise typer.Exit(code=code)


def _confirm_delete(task: Task) -> bool:
    try:
        return bool(typer.confirm(f"Delete #{task.id} {task.title}?", default=False))
    except (click.Abort, EOFError, KeyboardInterrupt):
        return False


def _emit_task_list(
    svc: TaskService,
    tasks: list[Task],
    as_json: bool,
    *,
    grouped: bool = False,
) -> None:
    if as_json:
        typer.echo(render.render_task_list_json(tasks))
        return
    columns = storage.resolve_list_table_columns(svc.repository.tasks_root, warn=_warn_config)
    if _can_render_rich_output():
        _print_rich(render.render_task_list_rich(tasks, columns, grouped=grouped))
    else:
        typer.echo(render.render_task_list_plain(tasks, columns))


def _command_choices() -> list[tuple[str, str]]:
    choices: list[tuple[str, str]] = []
    for command in app.registered_commands:
        if not command.name or command.callback is None:
            continue
        doc = (command.callback.__doc__ or "").strip()
        summary = doc.splitlines()[0] if doc else ""
        choices.append((command.name, summary))
    return choices


def _find_command(name: str):
    for command in app.registered_commands:
        if command.name == name and command.callback is not None:
            return command
    return None


def _run_command_picker(ctx: typer.Context, *, tasks_root: Path | None) -> None:
    selected = choose_command(_command_choices(), title="Select a dash-tasks command")
    if not selected:
        _exit_canceled(1)
    command = _find_command(selected)
    if command is None:
        return
    kwargs: dict[str, object] = {}
    if tasks_root is not None:
        kwargs["tasks_root"] = tasks_root
    ctx.invoke(command.callback, **kwargs)


@app.callback(invoke_without_command=True)
def root_callback(
    ctx: typer.Context,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Open an interactive command picker when no command is provided."""
    if verbose:
        setup_logging(verbose=True)
    if ctx.invoked_subcommand is not None:
        return

    root_for_interactive = _root_for_interactive_lookup(tasks_root)
    interactive_enabled = _resolve_interactive_enabled(root_for_interactive, nointeractive=nointeractive)

    if not interactive_enabled:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    if not _can_interact():
        typer.echo(ctx.get_help())
        typer.echo("Error: command selection requires an interactive terminal.", err=True)
        raise typer.Exit(code=2)

    _run_command_picker(ctx, tasks_root=tasks_root)


@app.command("init")
def init_cmd(
    tasks_root: TasksRootOption = None,
) -> None:
    """Initialize the .dash-tasks directory and config."""

    def _inner() -> None:
        svc = _service(tasks_root, init=True)
        root = svc.repository.tasks_root
        typer.echo(f"Initialized tasks root: {root}")
        cfg_path = storage.config_path(root)
        if storage.write_default_config_if_missing(root):
            typer.echo(
                f"Created config: {cfg_path} "
                f"(interactive_enabled={storage.DEFAULT_INTERACTIVE_ENABLED})"
            )
        else:
            typer.echo(f"Using existing config: {cfg_path}")

    _run_and_handle(_inner)


@app.command("create")
def create_cmd(
    title: Annotated[str | None, typer.Argument(help="Task title", show_default=False)] = None,
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    priority: Annotated[str, typer.Option("--priority", "-p", help="HIGH, MEDIUM or LOW")] = "MEDIUM",
    status: Annotated[
        str,
        typer.Option("--status", "-s", help="TODO, IN_PROGRESS, FINISHED, IDEA or NEXT"),
    ] = "TODO",
    deadline: Annotated[str | None, typer.Option("--deadline", help="Due date, e.g. 2026-03-01 or +3d")] = None,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Create a task."""

    def _inner() -> None:
        svc = _service(tasks_root)
        interactive_enabled = _resolve_interactive_enabled(
            svc.repository.tasks_root,
            nointeractive=nointeractive,
        )

        open_form = title is None and _can_prompt(interactive_enabled)
        if title is None and not open_form:
            raise TaskValidationError("title is required in non-interactive mode")

        local_title = title
        local_description = description
        local_priority = priority
        local_status = status
        local_deadline = deadline

        if open_form:
            form = create_form(default_title=title)
            if form is None:
                _exit_canceled(1)
            local_title = form["title"]
            local_description = form["description"]
            local_priority = form["priority"]
            local_status = form["status"]
            local_deadline = form["deadline"]

        task = svc.create_task(
            local_title or "",
            description=local_description,
            priority=_normalize_choice(local_priority),
            status=_normalize_choice(local_status),
            deadline=_parse_deadline_option(local_deadline, svc),
        )
        typer.echo(f"Created: #{task.id} {task.title}")

    _run_and_handle(_inner)


@app.command("list")
def list_cmd(
    status: Annotated[str | None, typer.Option("--status", "-s", help="Only this stored status")] = None,
    priority: Annotated[str | None, typer.Option("--priority", "-p", help="Only this priority")] = None,
    due_within: Annotated[
        int | None,
        typer.Option("--due-within", help="Deadline within N days from now"),
    ] = None,
    urgent: Annotated[
        bool,
        typer.Option("--urgent", help="HIGH priority with a deadline within 3 days"),
    ] = False,
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """List tasks, optionally filtered (filters combine with AND)."""

    def _inner() -> None:
        svc = _service(tasks_root)
        task_filter = TaskFilter(
            status=_normalize_choice(status),
            priority=_normalize_choice(priority),
            due_within_days=due_within,
            high_priority_urgent=urgent or None,
        )
        _emit_task_list(svc, svc.list_tasks(task_filter), as_json, grouped=task_filter.is_empty())

    _run_and_handle(_inner)


@app.command("urgent")
def urgent_cmd(
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show unfinished HIGH priority tasks due within 3 days."""

    def _inner() -> None:
        svc = _service(tasks_root)
        _emit_task_list(svc, svc.urgent_tasks(), as_json)

    _run_and_handle(_inner)


@app.command("next")
def next_cmd(
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show open tasks that deserve attention next."""

    def _inner() -> None:
        svc = _service(tasks_root)
        _emit_task_list(svc, svc.next_tasks(), as_json)

    _run_and_handle(_inner)


@app.command("dashboard")
def dashboard_cmd(
    as_json: JsonOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show task counts, completion rate, and deadline pressure."""

    def _inner() -> None:
        svc = _service(tasks_root)
        stats = svc.dashboard_stats()
        if as_json:
            typer.echo(render.render_dashboard_json(stats))
        elif _can_render_rich_output():
            _print_rich(render.render_dashboard_rich(stats))
        else:
            typer.echo(render.render_dashboard_plain(stats))

    _run_and_handle(_inner)


@app.command("view")
def view_cmd(
    task_id: TaskIdArgument = None,
    as_json: JsonOption = False,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Show a detailed view of one task."""

    def _inner() -> None:
        svc = _service(tasks_root)
        interactive_enabled = _resolve_interactive_enabled(
            svc.repository.tasks_root,
            nointeractive=nointeractive,
        )
        selected = _select_task_if_missing(
            svc,
            task_id,
            "Select a task to view",
            interactive_enabled=interactive_enabled,
        )
        task = svc.get_task(selected)
        if as_json:
            typer.echo(render.render_task_detail_json(task))
        elif _can_render_rich_output():
            _print_rich(render.render_task_detail_rich(task))
        else:
            typer.echo(render.render_task_detail_plain(task))

    _run_and_handle(_inner)


@app.command("update")
def update_cmd(
    task_id: TaskIdArgument = None,
    title: Annotated[str | None, typer.Option("--title")] = None,
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
    clear_description: Annotated[bool, typer.Option("--clear-description")] = False,
    priority: Annotated[str | None, typer.Option("--priority", "-p")] = None,
    status: Annotated[str | None, typer.Option("--status", "-s")] = None,
    deadline: Annotated[str | None, typer.Option("--deadline")] = None,
    clear_deadline: Annotated[bool, typer.Option("--clear-deadline")] = False,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Update task fields."""

    def _inner() -> None:
        if deadline is not None and clear_deadline:
            raise TaskValidationError("--deadline and --clear-deadline are mutually exclusive")
        if description is not None and clear_description:
            raise TaskValidationError("--description and --clear-description are mutually exclusive")

        svc = _service(tasks_root)
        interactive_enabled = _resolve_interactive_enabled(
            svc.repository.tasks_root,
            nointeractive=nointeractive,
        )
        selected = _select_task_if_missing(
            svc,
            task_id,
            "Select a task to update",
            interactive_enabled=interactive_enabled,
        )

        new_deadline = UNSET
        if clear_deadline:
            new_deadline = None
        elif deadline is not None:
            new_deadline = _parse_deadline_option(deadline, svc)

        new_description = UNSET
        if clear_description:
            new_description = None
        elif description is not None:
            new_description = description

        task = svc.update_task(
            selected,
            title=title if title is not None else UNSET,
            description=new_description,
            priority=_normalize_choice(priority) if priority is not None else UNSET,
            status=_normalize_choice(status) if status is not None else UNSET,
            deadline=new_deadline,
        )
        typer.echo(f"Updated: #{task.id} {task.title}")

    _run_and_handle(_inner)


@app.command("start")
def start_cmd(
    task_id: TaskIdArgument = None,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Move a task to IN_PROGRESS."""

    def _inner() -> None:
        svc = _service(tasks_root)
        interactive_enabled = _resolve_interactive_enabled(
            svc.repository.tasks_root,
            nointeractive=nointeractive,
        )
        selected = _select_task_if_missing(
            svc,
            task_id,
            "Select a task to start",
            interactive_enabled=interactive_enabled,
            candidates=lambda task: task.status != "IN_PROGRESS",
        )
        task = svc.start_task(selected)
        typer.echo(f"Started: #{task.id} {task.title}")

    _run_and_handle(_inner)


@app.command("finish")
def finish_cmd(
    task_id: TaskIdArgument = None,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Mark a task FINISHED and stamp its completion time."""

    def _inner() -> None:
        svc = _service(tasks_root)
        interactive_enabled = _resolve_interactive_enabled(
            svc.repository.tasks_root,
            nointeractive=nointeractive,
        )
        selected = _select_task_if_missing(
            svc,
            task_id,
            "Select a task to finish",
            interactive_enabled=interactive_enabled,
            candidates=lambda task: task.status != "FINISHED",
        )
        task = svc.finish_task(selected)
        typer.echo(f"Finished: #{task.id} {task.title}")

    _run_and_handle(_inner)


@app.command("delete")
def delete_cmd(
    task_id: TaskIdArgument = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")] = False,
    nointeractive: NoInteractiveOption = False,
    tasks_root: TasksRootOption = None,
) -> None:
    """Delete a task permanently."""

    def _inner() -> None:
        svc = _service(tasks_root)
        interactive_enabled = _resolve_interactive_enabled(
            svc.repository.tasks_root,
            nointeractive=nointeractive,
        )
        selected = _select_task_if_missing(
            svc,
            task_id,
            "Select a task to delete",
            interactive_enabled=interactive_enabled,
        )
        if not yes and _can_prompt(interactive_enabled):
            if not _confirm_delete(svc.get_task(selected)):
                _exit_canceled(1)
        task = svc.delete_task(selected)
        typer.echo(f"Deleted: #{task.id} {task.title}")

    _run_and_handle(_inner)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
