"""Ordered-list stores the vote log can be written to."""

from ..config import StoreConfig
from .base import ListStore
from .memory import MemoryListStore
from .redis_store import RedisListStore
from .sqlite_store import SQLiteListStore


def create_store(config: StoreConfig) -> ListStore:
    """Build the list store selected by ``config.backend``."""
    if config.backend == "redis":
        return RedisListStore.from_url(
            config.redis_url, socket_timeout=config.socket_timeout_seconds
        )
    if config.backend == "sqlite":
        store = SQLiteListStore(config.sqlite_path)
        store.connect()
        return store
    if config.backend == "memory":
        return MemoryListStore()
    raise ValueError(f"Unknown store backend '{config.backend}'")


__all__ = [
    "ListStore",
    "MemoryListStore",
    "RedisListStore",
    "SQLiteListStore",
    "create_store",
]
