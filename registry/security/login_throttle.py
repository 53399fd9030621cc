"""In-memory failed-login throttle."""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Deque, DefaultDict


class LoginThrottle:
    """Thread-safe sliding window over failed login attempts per key.

    A key is locked out once ``max_failures`` failures fall inside the last
    ``window_seconds``; a successful login clears its history.
    """

    def __init__(self, max_failures: int, window_seconds: int) -> None:
        self._max_failures = max_failures
        self._window = window_seconds
        self._failures: DefaultDict[str, Deque[float]] = DefaultDict(deque)
        self._lock = Lock()

    def allow(self, key: str) -> bool:
        """Return ``True`` when ``key`` may attempt another login."""
        now = time.time()
        with self._lock:
            queue = self._failures.get(key, ())
            while queue and now - queue[0] > self._window:
                queue.popleft()
            if not queue:
                self._failures.pop(key, None)
            return len(queue) < self._max_failures

    def record_failure(self, key: str) -> None:
        with self._lock:
            self._failures[key].append(time.time())

    def reset(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)
