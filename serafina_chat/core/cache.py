from __future__ import annotations

import time
from threading import Lock
from typing import Callable

MAX_KEY_CHARS = 256
DEFAULT_TTL_SEC = 24 * 60 * 60


def cache_key(locale: str, message: str) -> str:
    return f"{locale}|{(message or '').strip().lower()}"[:MAX_KEY_CHARS]


class ReplyCache:
    """In-process reply cache with lazy expiry.

    Expired entries are ignored on read and only replaced by a later ``set`` on
    the same key; nothing is swept.
    """

    def __init__(self, ttl_sec: int = DEFAULT_TTL_SEC, clock: Callable[[], float] = time.time) -> None:
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._store: dict[str, tuple[float, str]] = {}
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if now - stored_at >= self.ttl_sec:
            return None
        return value

    def set(self, key: str, value: str) -> None:
        stored_at = self._clock()
        with self._lock:
            self._store[key] = (stored_at, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
