"""Logging configuration for the dash-tasks CLI."""

from __future__ import annotations

import logging
import sys


class _ConsoleNoiseFilter(logging.Filter):
    """Pass dash_tasks records; only errors from third-party loggers."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("dash_tasks"):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(*, verbose: bool = False) -> None:
    """Install one stderr handler on the root logger.

    Without ``verbose`` only warnings and errors are shown so regular command
    output stays clean; ``verbose`` shows debug records too.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    handler.addFilter(_ConsoleNoiseFilter())
    root.addHandler(handler)

    logging.captureWarnings(True)
