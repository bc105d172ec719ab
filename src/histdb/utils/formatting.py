"""Formatting helpers for history output."""

from __future__ import annotations

from datetime import datetime

from histdb.storage.models import HistoryEntry

RUNNING_LABEL = "running"


def format_duration(seconds: int | None) -> str:
    """Format seconds to human-readable duration."""
    if seconds is None:
        return "-"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m"


def format_exit_code(exit_code: int | None) -> str:
    return RUNNING_LABEL if exit_code is None else str(exit_code)


def format_timestamp(ts: int) -> str:
    """Unix seconds as local time."""
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def format_entry(entry: HistoryEntry) -> str:
    """Format a history row as a single tab-separated line."""
    return (
        f"id: {entry.execution_id}\t"
        f"exit: {format_exit_code(entry.exit_code)}\t"
        f"dir: {entry.directory}\t"
        f"argv: {entry.command}"
    )
