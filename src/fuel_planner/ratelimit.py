"""Per-caller request limits for the weather endpoint."""

import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Callable

DEFAULT_LIMIT = 100  # requests per window
DEFAULT_WINDOW_SECONDS = 60 * 60


class RateLimiter(ABC):
    @abstractmethod
    def allow(self, key: str) -> bool:
        """Count one request for key; False if the key is over its limit."""

    @abstractmethod
    def reset(self, key: str | None = None) -> None:
        """Forget counters for key, or for every key."""


class FixedWindowRateLimiter(RateLimiter):
    """Fixed window per caller, opened by the caller's first request.

    Increment-and-compare runs under one lock so concurrent requests from
    the same caller can't both take the last slot.
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        # key -> (count, window reset time)
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        now = self.clock()
        with self._lock:
            record = self._windows.get(key)
            if record is None or now >= record[1]:
                self._windows[key] = (1, now + self.window_seconds)
                return True
            count, reset_at = record
            if count >= self.limit:
                return False
            self._windows[key] = (count + 1, reset_at)
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            record = self._windows.get(key)
            if record is None or self.clock() >= record[1]:
                return self.limit
            return max(0, self.limit - record[0])

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)
