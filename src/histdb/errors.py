"""Exception hierarchy for histdb.

Every error carries the process exit code the CLI uses for it, so callers can
tell an unreadable store from a lost execution id without parsing messages.
"""

from __future__ import annotations

from typing import Any


class HistoryError(Exception):
    """Base class for all histdb errors."""

    exit_code = 1

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class StoreInitError(HistoryError):
    """The store could not be opened, created or initialized."""


class ResolutionError(HistoryError):
    """A command or place could not be looked up or created."""


class StorageError(HistoryError):
    """A read or write against an already-open store failed."""


class ExecutionNotFoundError(HistoryError):
    """An execution id has no matching row."""

    exit_code = 3

    def __init__(self, execution_id: int) -> None:
        super().__init__(f"Execution not found: {execution_id}", execution_id=execution_id)
        self.execution_id = execution_id


class InvalidInputError(HistoryError):
    """Required input is missing or blank."""

    exit_code = 2
