"""Per-client request counter over a fixed window, with expired-entry sweeping."""

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class _ClientWindow:
    count: int
    reset_at: float


class RateLimiter:
    """Allow at most `max_requests` per client key per `window` seconds.

    A client's window starts with its first request and resets once it has
    elapsed. Expired entries are swept at most once per window so the map
    only holds clients seen recently.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._clients: dict[str, _ClientWindow] = {}
        self._next_sweep = clock() + window

    def allow(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)

            entry = self._clients.get(key)
            if entry is None or now > entry.reset_at:
                self._clients[key] = _ClientWindow(count=1, reset_at=now + self.window)
                return True

            if entry.count >= self.max_requests:
                return False

            entry.count += 1
            return True

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._clients.items() if now > entry.reset_at]
        for key in expired:
            del self._clients[key]
        self._next_sweep = now + self.window

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
