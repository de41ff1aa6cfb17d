"""Deadline-aware task tracking with urgent/next views and a dashboard."""

__version__ = "0.1.0"
