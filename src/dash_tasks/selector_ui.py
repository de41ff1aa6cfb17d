"""InquirerPy prompts behind one runner.

Every helper returns the answer, ``None`` when the user backs out, or raises
``SelectorUnavailableError`` so the caller can switch to typed input.
"""

from __future__ import annotations

import sys
from typing import Any, Sequence


class SelectorUnavailableError(RuntimeError):
    """Raised when the InquirerPy prompts cannot run here."""


def _require_terminal() -> None:
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise SelectorUnavailableError("interactive selector requires a TTY")


def _load_inquirer():
    try:
        from InquirerPy import inquirer
    except ImportError as exc:  # pragma: no cover - environment dependent
        raise SelectorUnavailableError("InquirerPy unavailable") from exc
    return inquirer


def _run(kind: str, message: str, **options: Any) -> str | None:
    _require_terminal()
    factory = getattr(_load_inquirer(), kind)
    try:
        answer = factory(
            message=message,
            mandatory=False,
            raise_keyboard_interrupt=True,
            **options,
        ).execute()
    except (KeyboardInterrupt, EOFError):
        return None
    except Exception as exc:
        raise SelectorUnavailableError(f"{kind} prompt failed") from exc
    return None if answer is None else str(answer)


def pick(
    message: str,
    options: Sequence[tuple[str, str]],
    *,
    default: str | None = None,
    searchable: bool = False,
) -> str | None:
    """Choose one ``(value, label)`` option.

    ``searchable`` switches to fuzzy matching, where ``default`` does not apply.
    """
    if not options:
        return None
    choices = [{"name": label, "value": value} for value, label in options]
    if searchable:
        return _run("fuzzy", message, choices=choices, vi_mode=False)
    return _run("select", message, choices=choices, default=default, pointer=">", vi_mode=False)


def ask_text(message: str, *, default: str = "") -> str | None:
    return _run("text", message, default=default)
