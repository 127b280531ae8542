import threading
import time
from typing import Callable


class RateLimiter:
    """
    Trailing-window request counter per key (normalized phone number).

    Old timestamps are pruned on each check; there is no background sweep.
    State is in-process only and resets on restart.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            recent = [t for t in self._requests.get(key, []) if now - t < self.window_seconds]

            if len(recent) >= self.max_requests:
                self._requests[key] = recent
                return False

            recent.append(now)
            self._requests[key] = recent
            return True
