"""In-process fixed-window rate limiter.

Each key gets a window that opens on its first hit and lasts
``decay_seconds``. Counters are process-local, so several workers each
enforce their own limit.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


__all__ = ["RateLimiter"]

# Tracked keys before expired windows are swept out.
DEFAULT_SWEEP_THRESHOLD = 1024


@dataclass(slots=True)
class _Window:
    attempts: int
    resets_at: float


class RateLimiter:
    """Count hits per key within an expiring window.

    Example:
        >>> limiter = RateLimiter()
        >>> limiter.attempt("paperless-api:10.0.0.1", 60, decay_seconds=60)
        (True, 0)
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ) -> None:
        """Initialize the limiter.

        Args:
            clock: Monotonic time source in seconds, replaceable in tests.
            sweep_threshold: Number of tracked keys from which expired
                windows are dropped, at most once per window length.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, _Window] = {}
        self._sweep_threshold = sweep_threshold
        self._next_sweep = 0.0

    def __len__(self) -> int:
        """Number of keys currently tracked, expired or not."""
        with self._lock:
            return len(self._windows)

    def _current(self, key: str, now: float) -> _Window | None:
        window = self._windows.get(key)
        if window is not None and window.resets_at <= now:
            del self._windows[key]
            return None
        return window

    def _sweep(self, now: float, decay_seconds: float) -> None:
        self._windows = {
            key: window
            for key, window in self._windows.items()
            if window.resets_at > now
        }
        self._next_sweep = now + decay_seconds

    def _record(self, key: str, decay_seconds: float, now: float) -> int:
        window = self._current(key, now)
        if window is None:
            if (
                len(self._windows) >= self._sweep_threshold
                and now >= self._next_sweep
            ):
                self._sweep(now, decay_seconds)
            window = _Window(attempts=0, resets_at=now + decay_seconds)
            self._windows[key] = window
        window.attempts += 1
        return window.attempts

    def attempt(
        self,
        key: str,
        max_attempts: int,
        decay_seconds: float,
    ) -> tuple[bool, int]:
        """Check the limit and record a hit in one step.

        Returns:
            ``(True, 0)`` when the hit was recorded, or ``(False, seconds)``
            when ``key`` is over the limit, with the whole seconds until
            its window resets.
        """
        with self._lock:
            now = self._clock()
            window = self._current(key, now)
            if window is not None and window.attempts >= max_attempts:
                return False, max(0, math.ceil(window.resets_at - now))
            self._record(key, decay_seconds, now)
            return True, 0

    def too_many_attempts(self, key: str, max_attempts: int) -> bool:
        """Whether ``key`` has used up ``max_attempts`` in its window."""
        with self._lock:
            window = self._current(key, self._clock())
            return window is not None and window.attempts >= max_attempts

    def hit(self, key: str, decay_seconds: float) -> int:
        """Record one attempt and return the count in the current window."""
        with self._lock:
            return self._record(key, decay_seconds, self._clock())

    def attempts(self, key: str) -> int:
        """Attempts recorded for ``key`` in its current window."""
        with self._lock:
            window = self._current(key, self._clock())
            return 0 if window is None else window.attempts

    def available_in(self, key: str) -> int:
        """Whole seconds until the window for ``key`` resets (0 if none)."""
        with self._lock:
            now = self._clock()
            window = self._current(key, now)
            if window is None:
                return 0
            return max(0, math.ceil(window.resets_at - now))

    def clear(self, key: str) -> None:
        """Forget all attempts for ``key``."""
        with self._lock:
            self._windows.pop(key, None)
