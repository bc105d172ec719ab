"""Data models for histdb."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class HistoryEntry:
    """An execution joined with its command and place.

    exit_code and duration stay None until the execution is closed.
    """

    execution_id: int = 0
    exit_code: int | None = None
    host: str = ""
    directory: str = ""
    command: str = ""
    start_time: int = 0
    duration: int | None = None

    @property
    def running(self) -> bool:
        return self.exit_code is None
