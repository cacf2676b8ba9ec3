"""Minimum splash duration helper."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MinimumDisplayTimer:
    """Holds a screen for at least ``minimum`` seconds after ``start``.

    The wait is advisory: ``skip`` releases a pending ``wait_remaining``
    immediately, and a skipped timer never waits again.
    """

    def __init__(self, minimum: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.minimum = max(0.0, minimum)
        self._clock = clock
        self._started_at: Optional[float] = None
        self._skip = asyncio.Event()

    def start(self) -> None:
        self._started_at = self._clock()

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    @property
    def remaining(self) -> float:
        if self._started_at is None:
            return self.minimum
        return max(0.0, self.minimum - self.elapsed)

    @property
    def skipped(self) -> bool:
        return self._skip.is_set()

    def skip(self) -> None:
        """Release any pending wait."""
        self._skip.set()

    async def wait_remaining(self) -> bool:
        """Sleep until the minimum duration has passed.

        Returns:
            True if the full duration elapsed, False if the wait was skipped
        """
        remaining = self.remaining
        if self._skip.is_set():
            return False
        if remaining <= 0:
            return True

        try:
            await asyncio.wait_for(self._skip.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            return True
        logger.debug(f"Minimum display wait skipped with {self.remaining:.3f}s left")
        return False
