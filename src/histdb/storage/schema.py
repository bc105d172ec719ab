"""Schema creation for the history store."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from histdb.errors import StoreInitError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS commands (
    id INTEGER PRIMARY KEY,
    text TEXT NOT NULL,
    UNIQUE(text)
);

CREATE TABLE IF NOT EXISTS places (
    id INTEGER PRIMARY KEY,
    host TEXT NOT NULL,
    directory TEXT NOT NULL,
    UNIQUE(host, directory)
);

CREATE TABLE IF NOT EXISTS executions (
    id INTEGER PRIMARY KEY,
    command_id INTEGER NOT NULL REFERENCES commands(id),
    place_id INTEGER NOT NULL REFERENCES places(id),
    exit_code INTEGER,
    start_time INTEGER NOT NULL,
    duration INTEGER
);

CREATE INDEX IF NOT EXISTS idx_executions_start_time ON executions(start_time);

CREATE TRIGGER IF NOT EXISTS executions_start_time_immutable
BEFORE UPDATE OF start_time ON executions
BEGIN
    SELECT RAISE(ABORT, 'start_time is immutable');
END;
"""


async def initialize(db_path: str | Path) -> Path:
    """Create the history tables if they do not exist yet.

    Safe to call on an already initialized store. Returns the resolved path.
    """
    resolved = Path(db_path).expanduser().resolve()
    try:
        resolved.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(resolved)) as db:
            await db.execute("PRAGMA journal_mode = WAL")
            await db.executescript(SCHEMA_SQL)
            await db.commit()
    except (OSError, aiosqlite.Error) as e:
        raise StoreInitError(f"Failed to initialize database {resolved}: {e}", db_path=str(resolved)) from e

    logger.info("Database initialized: %s", resolved)
    return resolved
