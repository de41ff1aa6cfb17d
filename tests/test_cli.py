from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner
import yaml

from dash_tasks.cli import app


runner = CliRunner()


def _init(tmp_path: Path) -> Path:
    root = tmp_path / ".dash-tasks"
    result = runner.invoke(app, ["init", "--tasks-root", str(root)])
    assert result.exit_code == 0
    return root


def _read_tasks(root: Path) -> list[dict]:
    payload = yaml.safe_load((root / "tasks.yaml").read_text(encoding="utf-8"))
    return payload["tasks"]


def _create(root: Path, title: str, *args: str) -> None:
    result = runner.invoke(app, ["create", title, *args, "--tasks-root", str(root)])
    assert result.exit_code == 0, result.output


def _json(root: Path, *args: str):
    result = runner.invoke(app, [*args, "--json", "--tasks-root", str(root)])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_init_idempotent(tmp_path: Path) -> None:
    root = _init(tmp_path)
    r2 = runner.invoke(app, ["init", "--tasks-root", str(root)])
    assert r2.exit_code == 0
    assert "Using existing config" in r2.output
    cfg = yaml.safe_load((root / "config.yaml").read_text(encoding="utf-8"))
    assert cfg["settings"]["interactive_enabled"] is True


def test_create_writes_task(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(
        app,
        [
            "create",
            "Write report",
            "--description",
            "quarterly",
            "--priority",
            "high",
            "--status",
            "in-progress",
            "--deadline",
            "2026-04-01T10:00",
            "--tasks-root",
            str(root),
        ],
    )
    assert result.exit_code == 0
    assert "Created: #1 Write report" in result.output
    (record,) = _read_tasks(root)
    assert record["title"] == "Write report"
    assert record["description"] == "quarterly"
    assert record["priority"] == "HIGH"
    assert record["status"] == "IN_PROGRESS"
    assert record["deadline"] == "2026-04-01T10:00:00"
    assert record["finished_at"] is None


def test_create_rejects_invalid_priority(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["create", "x", "--priority", "p0", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "Invalid priority" in result.output


def test_create_rejects_bad_deadline(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["create", "x", "--deadline", "soon", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "Invalid deadline" in result.output


def test_missing_title_non_interactive_errors(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["create", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "title is required in non-interactive mode" in result.output


def test_create_interactive_form(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr(
        "dash_tasks.cli.create_form",
        lambda default_title: {
            "title": "From form",
            "description": None,
            "priority": "LOW",
            "status": "IDEA",
            "deadline": "+2d",
        },
    )
    result = runner.invoke(app, ["create", "--tasks-root", str(root)])
    assert result.exit_code == 0
    (record,) = _read_tasks(root)
    assert record["title"] == "From form"
    assert record["status"] == "IDEA"
    assert record["deadline"] is not None


def test_finish_and_start_track_finished_at(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Ship")
    finished = runner.invoke(app, ["finish", "1", "--tasks-root", str(root)])
    assert finished.exit_code == 0
    assert "Finished: #1 Ship" in finished.output
    (record,) = _read_tasks(root)
    assert record["status"] == "FINISHED"
    assert record["finished_at"] is not None

    started = runner.invoke(app, ["start", "1", "--tasks-root", str(root)])
    assert started.exit_code == 0
    (record,) = _read_tasks(root)
    assert record["status"] == "IN_PROGRESS"
    assert record["finished_at"] is None


def test_update_fields_and_clear_deadline(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Draft", "--deadline", "+1d", "--description", "notes")
    result = runner.invoke(
        app,
        [
            "update",
            "1",
            "--title",
            "Final",
            "--status",
            "next",
            "--clear-deadline",
            "--clear-description",
            "--tasks-root",
            str(root),
        ],
    )
    assert result.exit_code == 0
    assert "Updated: #1 Final" in result.output
    (record,) = _read_tasks(root)
    assert record["title"] == "Final"
    assert record["status"] == "NEXT"
    assert record["deadline"] is None
    assert record["description"] is None


def test_update_conflicting_deadline_flags(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Draft")
    result = runner.invoke(
        app,
        ["update", "1", "--deadline", "+1d", "--clear-deadline", "--tasks-root", str(root)],
    )
    assert result.exit_code == 1
    assert "mutually exclusive" in result.output


def test_unknown_task_id_errors(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Only")
    result = runner.invoke(app, ["view", "99", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "Task not found: 99" in result.output


def test_delete_removes_task(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "Keep")
    _create(root, "Drop")
    result = runner.invoke(app, ["delete", "2", "--tasks-root", str(root)])
    assert result.exit_code == 0
    assert "Deleted: #2 Drop" in result.output
    assert [record["title"] for record in _read_tasks(root)] == ["Keep"]


def test_list_filters_combine(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "match", "--priority", "HIGH", "--deadline", "+1d")
    _create(root, "wrong-status", "--priority", "HIGH", "--deadline", "+1d", "--status", "IDEA")
    _create(root, "wrong-priority", "--priority", "LOW", "--deadline", "+1d")
    _create(root, "too-far", "--priority", "HIGH", "--deadline", "+10d")

    payload = _json(root, "list", "--status", "TODO", "--priority", "HIGH", "--due-within", "3")
    assert [item["title"] for item in payload] == ["match"]

    everything = _json(root, "list")
    assert [item["title"] for item in everything] == ["match", "wrong-status", "wrong-priority", "too-far"]


def test_list_negative_due_within_rejected(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["list", "--due-within=-1", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "non-negative" in result.output


def test_list_plain_output(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "visible")
    result = runner.invoke(app, ["list", "--tasks-root", str(root)])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].split() == ["id", "title", "status", "priority", "deadline"]
    assert "visible" in result.output


def test_urgent_and_next_views(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "urgent", "--priority", "HIGH", "--deadline", "+1d")
    _create(root, "high-no-deadline", "--priority", "HIGH")
    _create(root, "low-soon", "--priority", "LOW", "--deadline", "+2d")
    _create(root, "far", "--priority", "HIGH", "--deadline", "+9d")
    _create(root, "idea", "--priority", "HIGH", "--status", "IDEA")

    urgent = _json(root, "urgent")
    assert [item["title"] for item in urgent] == ["urgent"]

    upcoming = _json(root, "next")
    assert [item["title"] for item in upcoming] == ["urgent", "high-no-deadline", "low-soon"]


def test_dashboard_json(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "a", "--priority", "HIGH", "--deadline", "+1d")
    _create(root, "b", "--status", "FINISHED")
    _create(root, "c", "--status", "NEXT", "--priority", "LOW")

    stats = _json(root, "dashboard")
    assert stats["total_tasks"] == 3
    assert stats["total_finished_tasks"] == 1
    assert stats["tasks_by_status"] == {"TODO": 1, "IN_PROGRESS": 0, "FINISHED": 1, "IDEA": 0, "NEXT": 1}
    assert stats["tasks_by_priority"] == {"HIGH": 1, "MEDIUM": 1, "LOW": 1}
    assert stats["tasks_due_soon"] == 1
    assert stats["high_priority_urgent_count"] == 1
    assert stats["average_completion_time_days"] == 0.0
    assert stats["completion_rate"] == 33


def test_dashboard_plain(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "a")
    result = runner.invoke(app, ["dashboard", "--tasks-root", str(root)])
    assert result.exit_code == 0
    assert "completion rate" in result.output
    assert "N/A" in result.output


def test_subdirectory_discovers_root(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    nested = repo / "a" / "b"
    nested.mkdir(parents=True)
    root = repo / ".dash-tasks"
    runner.invoke(app, ["init", "--tasks-root", str(root)])
    _create(root, "root-task")

    with runner.isolated_filesystem(temp_dir=str(nested)):
        result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "Using tasks root:" in result.output


def test_missing_root_errors(tmp_path: Path) -> None:
    with runner.isolated_filesystem(temp_dir=str(tmp_path)):
        result = runner.invoke(app, ["list"])
    assert result.exit_code == 1
    assert "Run 'dash-tasks init' first" in result.output


def test_missing_selector_triggers_prompt_picker(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "pick-me")

    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr("dash_tasks.cli.choose_task", lambda tasks, title, now: tasks[0].id)

    result = runner.invoke(app, ["start", "--tasks-root", str(root)])
    assert result.exit_code == 0
    assert "Started: #1 pick-me" in result.output


def test_finish_picker_skips_finished_tasks(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "done", "--status", "FINISHED")
    _create(root, "open")
    seen: list[list[str]] = []

    def _choose(tasks, title, now):
        seen.append([task.title for task in tasks])
        return tasks[0].id

    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr("dash_tasks.cli.choose_task", _choose)
    result = runner.invoke(app, ["finish", "--tasks-root", str(root)])
    assert result.exit_code == 0
    assert seen == [["open"]]


def test_picker_cancel_exits_1(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "stay")
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr("dash_tasks.cli.choose_task", lambda tasks, title, now: None)

    result = runner.invoke(app, ["delete", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "Canceled." in result.output
    assert len(_read_tasks(root)) == 1


def test_missing_task_id_non_interactive_errors(tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "any")
    result = runner.invoke(app, ["view", "--nointeractive", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "task_id is required in non-interactive mode" in result.output


def test_no_args_interactive_runs_selected_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr("dash_tasks.cli.choose_command", lambda commands, title: "init")

    with runner.isolated_filesystem(temp_dir=str(tmp_path)):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "Initialized tasks root:" in result.output
        assert (Path(".dash-tasks") / "config.yaml").is_file()


def test_no_args_interactive_cancel_exits_1(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr("dash_tasks.cli.choose_command", lambda commands, title: None)

    result = runner.invoke(app, [])
    assert result.exit_code == 1


def test_no_args_non_interactive_prints_help_and_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: False)

    result = runner.invoke(app, [])
    assert result.exit_code == 2
    assert "Usage:" in result.output
    assert "interactive terminal" in result.output


def test_root_nointeractive_prints_help_and_exits_zero(tmp_path: Path) -> None:
    root = _init(tmp_path)
    result = runner.invoke(app, ["--tasks-root", str(root), "--nointeractive"])
    assert result.exit_code == 0
    assert "Usage:" in result.output


def test_invalid_interactive_enabled_warns_and_falls_back(tmp_path: Path) -> None:
    root = _init(tmp_path)
    (root / "config.yaml").write_text(
        "settings:\n  interactive_enabled: maybe\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["create", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "Warning: Invalid settings.interactive_enabled" in result.output


def test_interactive_disabled_in_config_blocks_picker(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "any")
    (root / "config.yaml").write_text("settings:\n  interactive_enabled: false\n", encoding="utf-8")
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)
    monkeypatch.setattr(
        "dash_tasks.cli.choose_task",
        lambda tasks, title, now: pytest.fail("picker opened"),
    )

    result = runner.invoke(app, ["start", "--tasks-root", str(root)])
    assert result.exit_code == 1
    assert "task_id is required" in result.output


def test_verbose_enables_debug_logging(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    calls: list[bool] = []
    monkeypatch.setattr("dash_tasks.cli.setup_logging", lambda verbose: calls.append(verbose))
    result = runner.invoke(app, ["--verbose", "list", "--tasks-root", str(root)])
    assert result.exit_code == 0
    assert calls == [True]


def test_deadline_relative_is_stored_as_instant(tmp_path: Path) -> None:
    root = _init(tmp_path)
    before = dt.datetime.now().replace(microsecond=0)
    _create(root, "relative", "--deadline", "+2d")
    (record,) = _read_tasks(root)
    deadline = dt.datetime.fromisoformat(record["deadline"])
    assert before + dt.timedelta(days=2) <= deadline + dt.timedelta(seconds=1)
    assert deadline <= dt.datetime.now() + dt.timedelta(days=2)


def test_interactive_delete_asks_for_confirmation(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    root = _init(tmp_path)
    _create(root, "stay")
    monkeypatch.setattr("dash_tasks.cli._can_interact", lambda: True)

    declined = runner.invoke(app, ["delete", "1", "--tasks-root", str(root)], input="n\n")
    assert declined.exit_code == 1
    assert "Delete #1 stay?" in declined.output
    assert "Canceled." in declined.output
    assert len(_read_tasks(root)) == 1

    confirmed = runner.invoke(app, ["delete", "1", "--yes", "--tasks-root", str(root)])
    assert confirmed.exit_code == 0
    assert "Delete #1" not in confirmed.output
    assert _read_tasks(root) == []
