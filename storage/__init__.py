"""
Storage package: snapshot store contract and its SQLite implementation.
"""

from .store import SnapshotStore, NotFoundError
from .sqlite import SQLiteStore

__all__ = ["SnapshotStore", "NotFoundError", "SQLiteStore"]
