"""Personal task list with a reactive SQLite-backed task store."""

__version__ = "0.1.0"
