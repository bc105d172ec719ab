"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

CONFIG_DIR = Path.home() / ".histdb"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass
class StorageConfig:
    db_path: str = "history.db"
    busy_timeout: float = 5.0


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = ""


@dataclass
class DisplayConfig:
    newest_first: bool = False
    limit: int = 0


@dataclass
class AppConfig:
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        storage = data.get("storage", {})
        config.storage.db_path = storage.get("db_path", config.storage.db_path)
        config.storage.busy_timeout = float(storage.get("busy_timeout", config.storage.busy_timeout))

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

        display = data.get("display", {})
        config.display.newest_first = display.get("newest_first", config.display.newest_first)
        config.display.limit = display.get("limit", config.display.limit)

    # Environment variable overrides
    if env_db := os.environ.get("HISTDB_DB_PATH"):
        config.storage.db_path = env_db
    if env_timeout := os.environ.get("HISTDB_BUSY_TIMEOUT"):
        config.storage.busy_timeout = float(env_timeout)
    if env_log_level := os.environ.get("HISTDB_LOG_LEVEL"):
        config.logging.level = env_log_level
    if env_log_file := os.environ.get("HISTDB_LOG_FILE"):
        config.logging.file = env_log_file

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "storage": {
            "db_path": config.storage.db_path,
            "busy_timeout": config.storage.busy_timeout,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
        "display": {
            "newest_first": config.display.newest_first,
            "limit": config.display.limit,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)
