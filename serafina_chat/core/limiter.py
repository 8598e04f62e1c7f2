import time
from collections import defaultdict, deque
from threading import Lock
from typing import Callable, Deque, Dict

UNKNOWN_CLIENT = "unknown"


class RateLimiter:
    def __init__(self, max_requests: int = 5, window_sec: float = 60.0, clock: Callable[[], float] = time.time) -> None:
        self.max_requests = max(1, max_requests)
        self.window_sec = window_sec
        self._clock = clock
        self._events: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            events = self._events[key or UNKNOWN_CLIENT]
            while events and now - events[0] > self.window_sec:
                events.popleft()
            if len(events) >= self.max_requests:
                return False
            events.append(now)
            return True


def client_identifier(forwarded_for: str | None) -> str:
    if not forwarded_for:
        return UNKNOWN_CLIENT
    first = forwarded_for.split(",", 1)[0].strip()
    return first or UNKNOWN_CLIENT
