"""History stores: the interface and its in-memory and SQLAlchemy backends."""

from strapsync.storage.base import HistoryStore
from strapsync.storage.memory import MemoryStore
from strapsync.storage.database import DatabaseStore

__all__ = ["HistoryStore", "MemoryStore", "DatabaseStore"]
