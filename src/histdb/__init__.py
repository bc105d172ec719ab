"""histdb - record and list shell command history in SQLite."""

__version__ = "0.1.0"
