"""
Sliding-window rate limiting.

The limiter keeps the timestamps of accepted calls and forgets those older
than the window, so a burst that exhausts the budget recovers exactly one
window later. Each limiter is an ordinary instance owned by whatever
validator uses it; there is no shared module-level limiter.

Usage:
    from agentgate.core.security.rate_limit import RateLimiter

    limiter = RateLimiter(max_calls=30, window_seconds=60.0)
    if not limiter.try_acquire():
        print(f"retry in {limiter.status().reset_in:.1f}s")
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from time import monotonic

from agentgate.core.security.models import RateLimitStatus


class RateLimiter:
    """Sliding-window call counter.

    Args:
        max_calls: Calls accepted inside one window.
        window_seconds: Window length.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        max_calls: int = 30,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        if max_calls <= 0:
            raise ValueError("max_calls must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: deque[float] = deque()

    def _prune_old_timestamps(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def try_acquire(self) -> bool:
        """Record a call if the window has room. Returns False when exhausted."""
        now = self._clock()
        self._prune_old_timestamps(now)
        if len(self._timestamps) >= self.max_calls:
            return False
        self._timestamps.append(now)
        return True

    def status(self) -> RateLimitStatus:
        now = self._clock()
        self._prune_old_timestamps(now)
        reset_in = 0.0
        if self._timestamps:
            reset_in = max(0.0, self._timestamps[0] + self.window_seconds - now)
        return RateLimitStatus(
            current=len(self._timestamps),
            max_calls=self.max_calls,
            window_seconds=self.window_seconds,
            reset_in=reset_in,
        )

    def reset(self) -> None:
        self._timestamps.clear()

    def reconfigure(self, *, max_calls: int | None = None, window_seconds: float | None = None) -> None:
        """Change the limits without discarding the recorded calls."""
        if max_calls is not None:
            if max_calls <= 0:
                raise ValueError("max_calls must be positive")
            self.max_calls = max_calls
        if window_seconds is not None:
            if window_seconds <= 0:
                raise ValueError("window_seconds must be positive")
            self.window_seconds = window_seconds


__all__ = ["RateLimiter"]
