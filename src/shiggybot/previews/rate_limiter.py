"""Fixed-window request budget for outbound preview fetches."""

from __future__ import annotations

import time
from typing import Callable

from shiggybot.util.logger import get_logger

logger = get_logger("rate_limiter")

DEFAULT_REQUESTS_PER_WINDOW = 60
DEFAULT_WINDOW_SECONDS = 3600


class RateLimiter:
    """Allow up to ``limit`` requests per ``window_seconds`` window.

    Instead of sleeping when the budget is spent, :meth:`try_acquire` returns
    False and the caller skips the preview. A host-reported reset time
    (e.g. a 429 ``x-ratelimit-reset`` header) can close the window early via
    :meth:`block_until`.

    Args:
        limit: Requests allowed per window.
        window_seconds: Window length in seconds.
        clock: Returns the current epoch time; replaceable in tests.
    """

    def __init__(
        self,
        limit: int = DEFAULT_REQUESTS_PER_WINDOW,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._remaining = limit
        self._reset_at = 0.0

    @property
    def remaining(self) -> int:
        self._roll_window()
        return self._remaining

    @property
    def reset_at(self) -> float:
        return self._reset_at

    def _roll_window(self) -> None:
        now = self._clock()
        if now >= self._reset_at:
            self._remaining = self.limit
            self._reset_at = now + self.window_seconds

    def try_acquire(self) -> bool:
        """Consume one request from the budget, or return False if none is left."""
        self._roll_window()
        if self._remaining <= 0:
            logger.debug("[RATE LIMITER] Budget exhausted until %.0f", self._reset_at)
            return False
        self._remaining -= 1
        return True

    def block_until(self, reset_epoch: float) -> None:
        """Refuse further requests until ``reset_epoch``."""
        self._remaining = 0
        self._reset_at = max(self._reset_at, float(reset_epoch))
        logger.warning("[RATE LIMITER] Remote host rate limited us until %.0f", self._reset_at)
