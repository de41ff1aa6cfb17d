"""Filesystem operations, task file IO, and config for dash-tasks."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any, Callable, Protocol

import yaml

from .models import VALID_PRIORITIES, VALID_STATUSES, Task, TaskStoreError

logger = logging.getLogger(__name__)

ROOT_DIR_NAME = ".dash-tasks"
TASKS_FILE_NAME = "tasks.yaml"
DEFAULT_INTERACTIVE_ENABLED = True

TASK_RECORD_KEYS = (
    "id",
    "title",
    "description",
    "priority",
    "status",
    "deadline",
    "created_at",
    "updated_at",
    "finished_at",
)
REQUIRED_RECORD_KEYS = ("id", "title", "priority", "status", "created_at", "updated_at")
INSTANT_KEYS = ("deadline", "created_at", "updated_at", "finished_at")

LIST_TABLE_COLUMN_DEFAULT_WIDTHS = {
    "id": 4,
    "title": 32,
    "status": 11,
    "priority": 8,
    "deadline": 16,
    "created": 16,
    "finished": 16,
}
LIST_TABLE_COLUMNS_SUPPORTED = tuple(LIST_TABLE_COLUMN_DEFAULT_WIDTHS)
DEFAULT_LIST_TABLE_COLUMNS = (
    ("id", 4),
    ("title", 32),
    ("status", 11),
    ("priority", 8),
    ("deadline", 16),
)


class TaskRepository(Protocol):
    """What the service needs from a task store."""

    def load_tasks(self) -> list[Task]: ...

    def save_tasks(self, tasks: list[Task]) -> None: ...

    def allocate_id(self) -> int: ...


# ---- root discovery ----


def find_repo_root(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in [start, *start.parents]:
        git_dir = candidate / ".git"
        if git_dir.exists():
            return candidate
    return None


def discover_tasks_roots(start: Path) -> list[Path]:
    start = start.resolve()
    roots: list[Path] = []
    for candidate in [start, *start.parents]:
        tasks_dir = candidate / ROOT_DIR_NAME
        if tasks_dir.is_dir():
            roots.append(tasks_dir)
    return roots


def choose_tasks_root(start: Path) -> tuple[Path | None, bool]:
    roots = discover_tasks_roots(start)
    if not roots:
        return None, False
    return roots[0], len(roots) > 1


def default_init_root(start: Path) -> Path:
    repo_root = find_repo_root(start)
    base = repo_root if repo_root is not None else start.resolve()
    return base / ROOT_DIR_NAME


def ensure_layout(tasks_root: Path) -> None:
    tasks_root.mkdir(parents=True, exist_ok=True)


# ---- config ----


def config_path(tasks_root: Path) -> Path:
    return tasks_root / "config.yaml"


def default_config(interactive_enabled: bool = DEFAULT_INTERACTIVE_ENABLED) -> dict[str, Any]:
    return {
        "settings": {
            "interactive_enabled": interactive_enabled,
            "list_table": {
                "columns": [
                    {"name": name, "width": width} for name, width in DEFAULT_LIST_TABLE_COLUMNS
                ],
            },
        }
    }


def write_default_config_if_missing(
    tasks_root: Path,
    interactive_enabled: bool = DEFAULT_INTERACTIVE_ENABLED,
) -> bool:
    path = config_path(tasks_root)
    if path.exists():
        return False
    payload = yaml.safe_dump(
        default_config(interactive_enabled),
        sort_keys=False,
        default_flow_style=False,
    )
    path.write_text(payload, encoding="utf-8")
    return True


def read_config(tasks_root: Path, warn: Callable[[str], None] | None = None) -> dict[str, Any]:
    path = config_path(tasks_root)
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        if warn is not None:
            warn(f"Unable to parse config at {path}. Falling back to defaults.")
        return {}
    if not isinstance(payload, dict):
        if warn is not None:
            warn(f"Invalid config format at {path}. Falling back to defaults.")
        return {}
    return payload


def _settings_section(
    tasks_root: Path,
    warn: Callable[[str], None] | None = None,
) -> dict[str, Any] | None:
    data = read_config(tasks_root, warn=warn)
    supported_top_keys = {"settings"}
    for key in data.keys():
        if key not in supported_top_keys and warn is not None:
            warn(f"Unsupported config key '{key}' in {config_path(tasks_root)}. Ignoring.")

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        if warn is not None:
            warn(f"Invalid settings section in {config_path(tasks_root)}. Using defaults.")
        return None

    supported_settings_keys = {"interactive_enabled", "list_table"}
    for key in settings.keys():
        if key not in supported_settings_keys and warn is not None:
            warn(f"Unsupported settings key '{key}' in {config_path(tasks_root)}. Ignoring.")
    return settings


def resolve_interactive_enabled(
    tasks_root: Path,
    warn: Callable[[str], None] | None = None,
) -> bool:
    settings = _settings_section(tasks_root, warn=warn)
    if settings is None:
        return DEFAULT_INTERACTIVE_ENABLED

    interactive_enabled = settings.get("interactive_enabled")
    if interactive_enabled is None:
        return DEFAULT_INTERACTIVE_ENABLED
    if not isinstance(interactive_enabled, bool):
        if warn is not None:
            warn(
                f"Invalid settings.interactive_enabled in {config_path(tasks_root)}. "
                f"Using default '{DEFAULT_INTERACTIVE_ENABLED}'."
            )
        return DEFAULT_INTERACTIVE_ENABLED
    return interactive_enabled


def _default_columns() -> list[dict[str, int | str]]:
    return [{"name": name, "width": width} for name, width in DEFAULT_LIST_TABLE_COLUMNS]


def resolve_list_table_columns(
    tasks_root: Path,
    warn: Callable[[str], None] | None = None,
) -> list[dict[str, int | str]]:
    settings = read_config(tasks_root).get("settings")
    if not isinstance(settings, dict):
        return _default_columns()
    list_table = settings.get("list_table")
    if list_table is None:
        return _default_columns()
    path = config_path(tasks_root)
    raw_columns = list_table.get("columns") if isinstance(list_table, dict) else None
    if not isinstance(raw_columns, list):
        if warn is not None:
            warn(f"Invalid settings.list_table in {path}. Using default columns.")
        return _default_columns()

    columns: list[dict[str, int | str]] = []
    seen: set[str] = set()
    for entry in raw_columns:
        if not isinstance(entry, dict):
            if warn is not None:
                warn(f"Invalid list column entry {entry!r} in {path}. Ignoring.")
            continue
        name = entry.get("name")
        if name not in LIST_TABLE_COLUMNS_SUPPORTED:
            if warn is not None:
                warn(f"Unsupported list column '{name}' in {path}. Ignoring.")
            continue
        if name in seen:
            if warn is not None:
                warn(f"Duplicate list column '{name}' in {path}. Ignoring.")
            continue
        width = entry.get("width", LIST_TABLE_COLUMN_DEFAULT_WIDTHS[name])
        if isinstance(width, bool) or not isinstance(width, int) or width <= 0:
            if warn is not None:
                warn(f"Invalid width for list column '{name}' in {path}. Ignoring.")
            continue
        seen.add(name)
        columns.append({"name": name, "width": width})

    if not columns:
        if warn is not None:
            warn(f"No valid settings.list_table.columns in {path}. Using default columns.")
        return _default_columns()
    return columns


# ---- task records ----


def format_instant(value: dt.datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def parse_instant(value: Any) -> dt.datetime | None:
    """Read an instant from a record; aware values become local naive time."""
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        parsed = value
    elif isinstance(value, dt.date):
        parsed = dt.datetime.combine(value, dt.time())
    elif isinstance(value, str):
        parsed = dt.datetime.fromisoformat(value)
    else:
        raise ValueError(f"Not an instant: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def task_to_record(task: Task) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for key in TASK_RECORD_KEYS:
        value = getattr(task, key)
        record[key] = format_instant(value) if key in INSTANT_KEYS else value
    return record


def task_from_record(record: dict[str, Any]) -> Task:
    missing = [key for key in REQUIRED_RECORD_KEYS if record.get(key) is None]
    if missing:
        raise ValueError(f"Task record missing keys {missing}")
    if record["status"] not in VALID_STATUSES:
        raise ValueError(f"Invalid status {record['status']!r} for task {record['id']}")
    if record["priority"] not in VALID_PRIORITIES:
        raise ValueError(f"Invalid priority {record['priority']!r} for task {record['id']}")
    values = {key: record.get(key) for key in TASK_RECORD_KEYS}
    for key in INSTANT_KEYS:
        values[key] = parse_instant(values[key])
    values["id"] = int(values["id"])
    values["title"] = str(values["title"])
    return Task(**values)


def tasks_path(tasks_root: Path) -> Path:
    return tasks_root / TASKS_FILE_NAME


def read_store(tasks_root: Path) -> tuple[int, list[Task]]:
    """Return ``(next_id, tasks)`` from the task file, empty when absent."""
    path = tasks_path(tasks_root)
    if not path.exists():
        return 1, []
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise TaskStoreError(f"Unable to parse task file {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise TaskStoreError(f"Invalid task file format at {path}")

    raw_tasks = payload.get("tasks") or []
    if not isinstance(raw_tasks, list):
        raise TaskStoreError(f"Invalid 'tasks' section in {path}")
    tasks: list[Task] = []
    for record in raw_tasks:
        if not isinstance(record, dict):
            raise TaskStoreError(f"Invalid task entry {record!r} in {path}")
        try:
            tasks.append(task_from_record(record))
        except (TypeError, ValueError) as exc:
            raise TaskStoreError(f"{exc} in {path}") from exc

    highest = max((task.id for task in tasks), default=0)
    next_id = payload.get("next_id")
    if not isinstance(next_id, int) or isinstance(next_id, bool) or next_id <= highest:
        next_id = highest + 1
    return next_id, tasks


def write_store(tasks_root: Path, next_id: int, tasks: list[Task]) -> None:
    payload = {
        "next_id": next_id,
        "tasks": [task_to_record(task) for task in tasks],
    }
    text = yaml.safe_dump(payload, sort_keys=False, default_flow_style=False, allow_unicode=True)
    tasks_path(tasks_root).write_text(text, encoding="utf-8")


class YamlTaskRepository:
    """Task repository backed by a single ``tasks.yaml`` file."""

    def __init__(self, tasks_root: Path) -> None:
        self.tasks_root = tasks_root.resolve()

    def load_tasks(self) -> list[Task]:
        _, tasks = read_store(self.tasks_root)
        logger.debug("Loaded %d tasks from %s", len(tasks), tasks_path(self.tasks_root))
        return tasks

    def save_tasks(self, tasks: list[Task]) -> None:
        next_id, _ = read_store(self.tasks_root)
        highest = max((task.id for task in tasks), default=0)
        write_store(self.tasks_root, max(next_id, highest + 1), tasks)
        logger.debug("Saved %d tasks to %s", len(tasks), tasks_path(self.tasks_root))

    def allocate_id(self) -> int:
        next_id, tasks = read_store(self.tasks_root)
        write_store(self.tasks_root, next_id + 1, tasks)
        return next_id
