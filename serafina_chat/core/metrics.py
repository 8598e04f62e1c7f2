from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Optional

REQUESTS = "serafina_requests_total"
QUICK_REPLIES = "serafina_quick_reply_total"
CACHE = "serafina_cache_total"
RATE_LIMITED = "serafina_rate_limited_total"
UPSTREAM = "serafina_upstream_total"


def series_key(name: str, **labels: Optional[str]) -> str:
    present = {k: v for k, v in labels.items() if v is not None}
    if not present:
        return name
    parts = ",".join(f"{k}={present[k]}" for k in sorted(present))
    return f"{name}{{{parts}}}"


class ChatMetrics:
    """Process-local counters for the chat pipeline, exposed on ``/metrics``."""

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._lock = Lock()

    def _bump(self, name: str, **labels: Optional[str]) -> None:
        key = series_key(name, **labels)
        with self._lock:
            self._counts[key] += 1

    def record_request(self, result: str, source: Optional[str] = None) -> None:
        self._bump(REQUESTS, result=result, source=source)

    def record_quick_reply(self, kind: str) -> None:
        self._bump(QUICK_REPLIES, kind=kind)

    def record_cache(self, hit: bool) -> None:
        self._bump(CACHE, result="hit" if hit else "miss")

    def record_rate_limited(self) -> None:
        self._bump(RATE_LIMITED)

    def record_upstream(self, result: str) -> None:
        self._bump(UPSTREAM, result=result)

    def count(self, name: str, **labels: Optional[str]) -> int:
        with self._lock:
            return self._counts.get(series_key(name, **labels), 0)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


metrics = ChatMetrics()
