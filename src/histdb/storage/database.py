"""SQLite access for command history: connections, dictionaries and executions."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from histdb.errors import (
    ExecutionNotFoundError,
    InvalidInputError,
    ResolutionError,
    StorageError,
    StoreInitError,
)
from histdb.storage.models import HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT = 5.0

_HISTORY_SELECT = """
    SELECT executions.id AS execution_id,
           executions.exit_code,
           executions.start_time,
           executions.duration,
           places.host,
           places.directory,
           commands.text AS command
    FROM executions
    JOIN commands ON executions.command_id = commands.id
    JOIN places ON executions.place_id = places.id
"""
_ORDER_ASC = "ORDER BY executions.start_time ASC, executions.id ASC"
_ORDER_DESC = "ORDER BY executions.start_time DESC, executions.id DESC"


@asynccontextmanager
async def open_db(
    db_path: str | Path,
    timeout: float = DEFAULT_BUSY_TIMEOUT,
) -> AsyncIterator[aiosqlite.Connection]:
    """Open the store for one operation and always close it afterwards.

    The connection runs in autocommit mode; use ``transaction()`` to group
    statements.
    """
    resolved = Path(db_path).expanduser().resolve()
    try:
        db = await aiosqlite.connect(str(resolved), timeout=timeout, isolation_level=None)
    except aiosqlite.Error as e:
        raise StoreInitError(f"Failed to open database {resolved}: {e}", db_path=str(resolved)) from e

    try:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
    except aiosqlite.Error as e:
        await db.close()
        raise StoreInitError(f"Failed to configure database {resolved}: {e}", db_path=str(resolved)) from e

    try:
        yield db
    finally:
        await db.close()


@asynccontextmanager
async def transaction(db: aiosqlite.Connection) -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed statements as one write transaction.

    BEGIN IMMEDIATE takes the write lock up front, so a concurrent writer waits
    on the busy timeout instead of failing halfway through.
    """
    try:
        await db.execute("BEGIN IMMEDIATE")
    except aiosqlite.Error as e:
        raise StorageError(f"Failed to begin transaction: {e}", operation="begin") from e

    try:
        yield db
    except BaseException:
        if db.in_transaction:
            try:
                await db.execute("ROLLBACK")
            except aiosqlite.Error:
                logger.exception("Rollback failed")
        raise
    else:
        try:
            await db.execute("COMMIT")
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to commit transaction: {e}", operation="commit") from e


async def resolve_command(db: aiosqlite.Connection, text: str) -> int:
    """Return the id of the command with this text, creating it if needed."""
    try:
        await db.execute("INSERT OR IGNORE INTO commands (text) VALUES (?)", (text,))
        async with db.execute("SELECT id FROM commands WHERE text = ?", (text,)) as cursor:
            row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise ResolutionError(f"Failed to resolve command {text!r}: {e}", text=text) from e

    if row is None:
        raise ResolutionError(f"Command vanished after insert: {text!r}", text=text)
    logger.debug("Resolved command %r -> %d", text, row["id"])
    return row["id"]


async def resolve_place(db: aiosqlite.Connection, host: str, directory: str) -> int:
    """Return the id of the (host, directory) place, creating it if needed."""
    try:
        await db.execute(
            "INSERT OR IGNORE INTO places (host, directory) VALUES (?, ?)",
            (host, directory),
        )
        async with db.execute(
            "SELECT id FROM places WHERE host = ? AND directory = ?",
            (host, directory),
        ) as cursor:
            row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise ResolutionError(
            f"Failed to resolve place {host}:{directory}: {e}",
            host=host,
            directory=directory,
        ) from e

    if row is None:
        raise ResolutionError(f"Place vanished after insert: {host}:{directory}", host=host, directory=directory)
    logger.debug("Resolved place %s:%s -> %d", host, directory, row["id"])
    return row["id"]


async def begin_execution(
    db: aiosqlite.Connection,
    command_id: int,
    place_id: int,
    start_time: int,
) -> int:
    """Insert an open execution and return its id."""
    try:
        cursor = await db.execute(
            "INSERT INTO executions (command_id, place_id, start_time) VALUES (?, ?, ?)",
            (command_id, place_id, start_time),
        )
    except aiosqlite.Error as e:
        raise StorageError(f"Failed to record execution start: {e}", operation="begin_execution") from e

    execution_id = cursor.lastrowid
    await cursor.close()
    logger.debug("Opened execution %d (command=%d, place=%d)", execution_id, command_id, place_id)
    return execution_id


async def end_execution(
    db: aiosqlite.Connection,
    execution_id: int,
    exit_code: int,
    end_time: int,
) -> None:
    """Close an execution with its exit code and duration.

    Raises ExecutionNotFoundError when no row has this id, and
    InvalidInputError when end_time is earlier than the recorded start.
    """
    try:
        cursor = await db.execute(
            "UPDATE executions SET exit_code = ?, duration = ? - start_time WHERE id = ? AND start_time <= ?",
            (exit_code, end_time, execution_id, end_time),
        )
        updated = cursor.rowcount
        await cursor.close()
        if updated == 0:
            async with db.execute("SELECT start_time FROM executions WHERE id = ?", (execution_id,)) as cursor:
                row = await cursor.fetchone()
    except aiosqlite.Error as e:
        raise StorageError(f"Failed to record execution end: {e}", operation="end_execution") from e

    if updated == 0:
        if row is None:
            raise ExecutionNotFoundError(execution_id)
        raise InvalidInputError(
            f"End time {end_time} is before start time {row['start_time']} of execution {execution_id}",
            field="end_time",
        )
    logger.debug("Closed execution %d with exit code %d", execution_id, exit_code)


async def iter_history(
    db: aiosqlite.Connection,
    newest_first: bool = False,
    limit: int | None = None,
) -> AsyncIterator[HistoryEntry]:
    """Yield history rows lazily, oldest first unless ``newest_first``."""
    order = _ORDER_DESC if newest_first else _ORDER_ASC
    sql = f"{_HISTORY_SELECT} {order} LIMIT ?"
    try:
        async with db.execute(sql, (limit if limit else -1,)) as cursor:
            async for row in cursor:
                yield HistoryEntry(
                    execution_id=row["execution_id"],
                    exit_code=row["exit_code"],
                    host=row["host"],
                    directory=row["directory"],
                    command=row["command"],
                    start_time=row["start_time"],
                    duration=row["duration"],
                )
    except aiosqlite.Error as e:
        raise StorageError(f"Failed to read history: {e}", operation="list") from e
