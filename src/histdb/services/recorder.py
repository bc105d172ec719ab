"""Command history recording service."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

from histdb.config import AppConfig
from histdb.errors import ExecutionNotFoundError, InvalidInputError
from histdb.storage.database import (
    begin_execution,
    end_execution,
    iter_history,
    open_db,
    resolve_command,
    resolve_place,
    transaction,
)
from histdb.storage.models import HistoryEntry
from histdb.storage.schema import initialize

logger = logging.getLogger(__name__)


def now() -> int:
    """Current wall-clock time in whole seconds."""
    return int(time.time())


class HistoryRecorder:
    """Record command starts and ends, and read them back."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @property
    def db_path(self) -> Path:
        return Path(self.config.storage.db_path)

    async def initialize(self) -> Path:
        """Create the store and its tables."""
        return await initialize(self.db_path)

    async def start(
        self,
        host: str,
        pwd: str,
        words: Sequence[str],
        start_time: int | None = None,
    ) -> int:
        """Record the start of a command and return the execution id.

        The command and place are resolved and the execution inserted in one
        transaction: either all three succeed or nothing is written.
        """
        if not host or not host.strip():
            raise InvalidInputError("Host is required", field="host")
        if not pwd or not pwd.strip():
            raise InvalidInputError("Working directory is required", field="pwd")
        command = " ".join(words)
        if not command.strip():
            raise InvalidInputError("Command is required", field="command")

        started = now() if start_time is None else start_time
        async with open_db(self.db_path, timeout=self.config.storage.busy_timeout) as db:
            async with transaction(db):
                command_id = await resolve_command(db, command)
                place_id = await resolve_place(db, host, pwd)
                execution_id = await begin_execution(db, command_id, place_id, started)

        logger.info("Started execution %d: %s (%s:%s)", execution_id, command, host, pwd)
        return execution_id

    async def end(
        self,
        execution_id: int,
        exit_code: int,
        end_time: int | None = None,
    ) -> None:
        """Close an execution with its exit code; duration is computed from its start."""
        ended = now() if end_time is None else end_time
        async with open_db(self.db_path, timeout=self.config.storage.busy_timeout) as db:
            try:
                await end_execution(db, execution_id, exit_code, ended)
            except ExecutionNotFoundError:
                logger.warning("End for unknown execution %d", execution_id)
                raise

        logger.info("Ended execution %d with exit code %d", execution_id, exit_code)

    async def history(
        self,
        newest_first: bool | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[HistoryEntry]:
        """Iterate recorded executions; unset arguments fall back to display config."""
        if newest_first is None:
            newest_first = self.config.display.newest_first
        if limit is None:
            limit = self.config.display.limit or None

        async with open_db(self.db_path, timeout=self.config.storage.busy_timeout) as db:
            async for entry in iter_history(db, newest_first=newest_first, limit=limit):
                yield entry
