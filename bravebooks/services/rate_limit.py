# bravebooks/services/rate_limit.py
"""
Fixed-window attempt limiter.

State per key is {count, window_start}. `check` never records anything; the
caller records a failed attempt after the action fails and resets the key
after it succeeds. With max_attempts=5 the 5th failure is still allowed and
recorded, the 6th check in the same window is denied.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from bravebooks.config import settings
from bravebooks.errors import RateLimitError

logger = logging.getLogger(__name__)


@dataclass
class Window:
    count: int
    window_start: float


@dataclass
class RateLimitResult:
    allowed: bool
    message: Optional[str] = None
    retry_after: Optional[int] = None  # seconds


class RateLimiter:
    def __init__(
        self,
        name: str,
        max_attempts: int | Callable[[], int],
        window_minutes: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        action: str = "attempts",
    ) -> None:
        self.name = name
        self._max_attempts = max_attempts
        self.window_seconds = window_minutes * 60
        self.clock = clock
        self.action = action
        self._lock = threading.Lock()
        self._windows: dict[str, Window] = {}

    @property
    def max_attempts(self) -> int:
        m = self._max_attempts
        return m() if callable(m) else m

    def _expired(self, win: Window, now: float) -> bool:
        return now - win.window_start > self.window_seconds

    def check(self, key: str) -> RateLimitResult:
        now = self.clock()
        with self._lock:
            win = self._windows.get(key)
            if win is None:
                return RateLimitResult(allowed=True)
            if self._expired(win, now):
                win.count = 0
                win.window_start = now
            if win.count >= self.max_attempts:
                retry = max(0, int(math.ceil(win.window_start + self.window_seconds - now)))
                minutes = max(1, int(math.ceil(retry / 60)))
                unit = "minute" if minutes == 1 else "minutes"
                return RateLimitResult(
                    allowed=False,
                    message=f"Too many {self.action}. Please try again in {minutes} {unit}.",
                    retry_after=retry,
                )
            return RateLimitResult(allowed=True)

    def _prune(self, now: float) -> None:
        for stale in [k for k, w in self._windows.items() if self._expired(w, now)]:
            del self._windows[stale]

    def record_failed_attempt(self, key: str) -> int:
        now = self.clock()
        with self._lock:
            self._prune(now)
            win = self._windows.get(key)
            if win is None or self._expired(win, now):
                win = Window(count=0, window_start=now)
                self._windows[key] = win
            win.count += 1
            return win.count

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def count(self, key: str) -> int:
        with self._lock:
            win = self._windows.get(key)
            return win.count if win else 0

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def enforce(self, key: str) -> None:
        """Raise RateLimitError when `key` is over the limit."""
        result = self.check(key)
        if not result.allowed:
            logger.warning("Rate limit hit: limiter=%s key=%s", self.name, key)
            raise RateLimitError(result.message)


# ========= limiter instances =========
login_email_limiter = RateLimiter(
    "login:email",
    lambda: settings.MAX_LOGIN_ATTEMPTS,
    settings.LOGIN_WINDOW_MINUTES,
    action="login attempts",
)
login_ip_limiter = RateLimiter("login:ip", 10, settings.LOGIN_WINDOW_MINUTES, action="login attempts")
register_ip_limiter = RateLimiter("register:ip", 3, 60, action="registration attempts")
reset_ip_limiter = RateLimiter("reset:ip", 3, 60, action="password reset requests")
reset_email_limiter = RateLimiter("reset:email", 3, 60, action="password reset requests")

ALL_LIMITERS = (
    login_email_limiter,
    login_ip_limiter,
    register_ip_limiter,
    reset_ip_limiter,
    reset_email_limiter,
)


def clear_all() -> None:
    for limiter in ALL_LIMITERS:
        limiter.clear()


def client_ip(headers, fallback: Optional[str] = None) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or fallback or "unknown"
