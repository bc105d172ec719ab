"""Tests for configuration module."""

from __future__ import annotations

from histdb.config import AppConfig, DisplayConfig, StorageConfig, load_config, save_config


class TestAppConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.storage.db_path == "history.db"
        assert config.storage.busy_timeout == 5.0
        assert config.logging.level == "WARNING"
        assert config.logging.file == ""
        assert config.display.newest_first is False
        assert config.display.limit == 0

    def test_load_without_file(self):
        assert load_config() == AppConfig()

    def test_save_and_load(self, tmp_path):
        import histdb.config as cfg_module

        config = AppConfig(
            storage=StorageConfig(db_path="/tmp/h.db", busy_timeout=1.5),
            display=DisplayConfig(newest_first=True, limit=20),
        )

        save_config(config)
        assert cfg_module.CONFIG_FILE.exists()

        loaded = load_config()
        assert loaded.storage.db_path == "/tmp/h.db"
        assert loaded.storage.busy_timeout == 1.5
        assert loaded.display.newest_first is True
        assert loaded.display.limit == 20

    def test_env_overrides(self, monkeypatch):
        save_config(AppConfig(storage=StorageConfig(db_path="/from/file.db")))
        monkeypatch.setenv("HISTDB_DB_PATH", "/from/env.db")
        monkeypatch.setenv("HISTDB_BUSY_TIMEOUT", "0.5")
        monkeypatch.setenv("HISTDB_LOG_LEVEL", "DEBUG")

        loaded = load_config()
        assert loaded.storage.db_path == "/from/env.db"
        assert loaded.storage.busy_timeout == 0.5
        assert loaded.logging.level == "DEBUG"
