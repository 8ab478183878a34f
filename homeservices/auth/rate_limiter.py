"""Fixed-window rate limiting for login and registration attempts."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from homeservices.api.errors import ApiError, ApiErrorCode
from homeservices.core.config import RateLimitPolicy

LOGGER = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    window_start_ms: float
    window_ms: int

    def expired(self, now_ms: float, window_ms: int | None = None) -> bool:
        limit = self.window_ms if window_ms is None else window_ms
        return now_ms - self.window_start_ms > limit


class RateLimiter:
    """Process-wide request counter keyed by caller key (e.g. ``login:<ip>``).

    The map is bounded: once ``max_keys`` is exceeded, expired windows are swept
    and then the least recently used keys are dropped.
    """

    def __init__(
        self,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._windows: OrderedDict[str, _Window] = OrderedDict()
        self._lock = Lock()
        self._max_keys = max(1, int(max_keys))
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def allow(self, key: str, max_requests: int, window_ms: int) -> bool:
        """Count one attempt for ``key`` and report whether it is within the ceiling."""
        now_ms = self._clock() * 1000
        with self._lock:
            window = self._windows.get(key)
            if window is None or window.expired(now_ms, window_ms):
                self._windows[key] = _Window(1, now_ms, window_ms)
                self._windows.move_to_end(key)
                self._evict(now_ms)
                return True

            self._windows.move_to_end(key)
            if window.count >= max_requests:
                return False
            window.count += 1
            return True

    def assert_allowed(self, key: str, policy: RateLimitPolicy, message: str) -> None:
        """Raise 429 when ``key`` has exhausted its window under ``policy``."""
        if self.allow(key, policy.max_requests, policy.window_ms):
            return
        LOGGER.warning("rate_limited", extra={"rate_limit_key": key})
        raise ApiError(
            status_code=429,
            error_code=ApiErrorCode.AUTH_RATE_LIMITED,
            message=message,
        )

    def _evict(self, now_ms: float) -> None:
        if len(self._windows) <= self._max_keys:
            return
        for stale_key in [k for k, w in self._windows.items() if w.expired(now_ms)]:
            del self._windows[stale_key]
        while len(self._windows) > self._max_keys:
            self._windows.popitem(last=False)
