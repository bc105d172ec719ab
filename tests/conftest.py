"""Shared test fixtures."""

from __future__ import annotations

import pytest

from histdb.config import AppConfig, DisplayConfig, LoggingConfig, StorageConfig


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "history.db"


@pytest.fixture
def app_config(tmp_path, db_path):
    """Create a test configuration."""
    return AppConfig(
        storage=StorageConfig(db_path=str(db_path), busy_timeout=5.0),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
        display=DisplayConfig(),
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.histdb and HISTDB_* variables."""
    import histdb.config as cfg_module

    monkeypatch.setattr(cfg_module, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(cfg_module, "CONFIG_FILE", tmp_path / "config" / "config.toml")
    for var in ("HISTDB_DB_PATH", "HISTDB_BUSY_TIMEOUT", "HISTDB_LOG_LEVEL", "HISTDB_LOG_FILE"):
        monkeypatch.delenv(var, raising=False)
