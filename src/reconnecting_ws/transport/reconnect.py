from __future__ import annotations

import asyncio
import random
from typing import Callable

from ..config import ClientOptions


class ReconnectStrategy:
    """Flat retry delay that turns into capped quadratic backoff, plus jitter."""

    def __init__(self, options: ClientOptions | None = None) -> None:
        opts = options or ClientOptions()
        self._min_retry_time_ms = opts.min_retry_time_ms
        self._max_retry_time_ms = opts.max_retry_time_ms
        self._jitter_range_ms = opts.reconnect_jitter_range_ms
        self._max_fails_before_backoff = opts.max_fails_before_backoff

    def get_delay(self, fail_count: int) -> float:
        """Return the delay in milliseconds before the next attempt."""
        delay = self._min_retry_time_ms
        if fail_count > self._max_fails_before_backoff:
            delay = min(
                self._min_retry_time_ms * fail_count * fail_count,
                self._max_retry_time_ms,
            )
        jitter = random.random() * self._jitter_range_ms
        return delay + jitter


class ReconnectScheduler:
    """Owns the consecutive-failure count and the single pending retry timer."""

    def __init__(self, strategy: ReconnectStrategy) -> None:
        self._strategy = strategy
        self._handle: asyncio.TimerHandle | None = None
        self._failures = 0

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def record_failure(self) -> int:
        self._failures += 1
        return self._failures

    def reset(self) -> None:
        self._failures = 0

    def schedule(self, callback: Callable[[], None]) -> float:
        """Replace any pending retry with one that runs *callback* after the
        backoff delay. Returns the delay in milliseconds."""
        self.cancel()
        delay = self._strategy.get_delay(self._failures)
        self._handle = asyncio.get_running_loop().call_later(
            delay / 1000, self._fire, callback
        )
        return delay

    def cancel(self) -> bool:
        """Cancel the pending retry. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
