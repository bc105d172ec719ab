"""Tests for the history recorder service."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from histdb.errors import ExecutionNotFoundError, InvalidInputError, ResolutionError
from histdb.services.recorder import HistoryRecorder
from histdb.storage.database import open_db


@pytest.fixture
def recorder(app_config):
    return HistoryRecorder(app_config)


async def _entries(recorder, **kwargs):
    return [entry async for entry in recorder.history(**kwargs)]


class TestHistoryRecorder:
    @pytest.mark.asyncio
    async def test_start_and_end(self, recorder):
        await recorder.initialize()
        execution_id = await recorder.start("h1", "/tmp", ["ls", "-la"], start_time=1000)
        await recorder.end(execution_id, 0, end_time=1003)

        entries = await _entries(recorder)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.execution_id == execution_id
        assert entry.command == "ls -la"
        assert entry.directory == "/tmp"
        assert entry.host == "h1"
        assert entry.exit_code == 0
        assert entry.duration == 3
        assert not entry.running

    @pytest.mark.asyncio
    async def test_same_command_twice(self, recorder, db_path):
        await recorder.initialize()
        first = await recorder.start("h1", "/tmp", ["make"])
        second = await recorder.start("h1", "/tmp", ["make"])
        assert first != second

        async with open_db(db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM commands")
            assert (await cursor.fetchone())[0] == 1
            cursor = await db.execute("SELECT COUNT(*) FROM places")
            assert (await cursor.fetchone())[0] == 1

    @pytest.mark.asyncio
    async def test_default_timestamps(self, recorder):
        await recorder.initialize()
        with patch("histdb.services.recorder.time.time", return_value=5000.7):
            execution_id = await recorder.start("h1", "/tmp", ["sleep", "2"])
        with patch("histdb.services.recorder.time.time", return_value=5002.2):
            await recorder.end(execution_id, 0)

        entry = (await _entries(recorder))[0]
        assert entry.start_time == 5000
        assert entry.duration == 2

    @pytest.mark.asyncio
    async def test_end_unknown_execution(self, recorder):
        await recorder.initialize()
        with pytest.raises(ExecutionNotFoundError):
            await recorder.end(42, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "host,pwd,words",
        [
            ("", "/tmp", ["ls"]),
            ("h1", "", ["ls"]),
            ("h1", "/tmp", []),
            ("h1", "/tmp", ["  "]),
        ],
    )
    async def test_invalid_input_touches_nothing(self, recorder, db_path, host, pwd, words):
        with pytest.raises(InvalidInputError):
            await recorder.start(host, pwd, words)
        assert not db_path.exists()

    @pytest.mark.asyncio
    async def test_start_is_all_or_nothing(self, recorder, db_path):
        await recorder.initialize()
        with patch("histdb.services.recorder.resolve_place", side_effect=ResolutionError("place lookup failed")):
            with pytest.raises(ResolutionError):
                await recorder.start("h1", "/tmp", ["ls"])

        async with open_db(db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM commands")
            assert (await cursor.fetchone())[0] == 0
        assert await _entries(recorder) == []

    @pytest.mark.asyncio
    async def test_history_uses_display_config(self, recorder, app_config):
        await recorder.initialize()
        ids = [await recorder.start("h1", "/tmp", [f"cmd_{i}"], start_time=1000 + i) for i in range(5)]

        app_config.display.newest_first = True
        app_config.display.limit = 2
        assert [e.execution_id for e in await _entries(recorder)] == [ids[4], ids[3]]

        assert [e.execution_id for e in await _entries(recorder, newest_first=False, limit=3)] == ids[:3]
