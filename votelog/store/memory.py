"""In-process list store, for tests and throwaway servers."""

import threading

from .base import ListStore


class MemoryListStore(ListStore):
    """Keeps every list in a dict. Nothing survives the process."""

    name = "memory"

    def __init__(self):
        self._lists: dict[str, list[str]] = {}
        self._scalars: dict[str, str] = {}
        self._lock = threading.Lock()

    def rpush(self, key: str, value: str) -> int:
        # The length returned must count this append and no later one
        with self._lock:
            entries = self._lists.setdefault(key, [])
            entries.append(value)
            return len(entries)

    def lrange(self, key: str, start: int) -> list[str]:
        with self._lock:
            return list(self._lists.get(key, [])[start:])

    def llen(self, key: str) -> int:
        return len(self._lists.get(key, []))

    def set_if_absent(self, key: str, value: str) -> str:
        with self._lock:
            return self._scalars.setdefault(key, value)

    def ping(self) -> bool:
        return True
