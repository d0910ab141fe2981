# app/rate_limit.py

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class _Entry:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter keyed by caller identity (phone, email)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def check(self, key: str, max_requests: int = 5, window_seconds: float = 60) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.reset_at <= now:
                del self._entries[key]
                entry = None

            if entry is None:
                self._prune(now)
                self._entries[key] = _Entry(count=1, reset_at=now + window_seconds)
                return True

            if entry.count >= max_requests:
                return False

            entry.count += 1
            return True

    def reset_in(self, key: str) -> float:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return 0.0
        return max(0.0, entry.reset_at - self._clock())

    def reset(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune(self, now: float) -> None:
        # caller holds the lock
        for stale in [k for k, e in self._entries.items() if e.reset_at <= now]:
            del self._entries[stale]
