"""Storage layer for Doc-O-Link."""

from docolink.storage.database import Database, get_db, reset_db

__all__ = ["Database", "get_db", "reset_db"]
