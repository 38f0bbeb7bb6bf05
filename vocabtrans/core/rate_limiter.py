"""Sliding-window admission control for outbound requests."""

import logging
import time
from collections import deque
from typing import Callable, Deque

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Bounds requests per rolling window.

    The ceiling is read through ``max_requests`` on every acquisition so a
    lowered requests-per-minute setting takes effect immediately.
    """

    def __init__(
        self,
        max_requests: Callable[[], int],
        window: float = 60.0,
        safety_margin: float = 0.1,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep
    ):
        self._max_requests = max_requests
        self.window = window
        self.safety_margin = safety_margin
        self._clock = clock
        self._sleep = sleep
        self._requests: Deque[float] = deque()

    @property
    def active_requests(self) -> int:
        self._purge(self._clock())
        return len(self._requests)

    def acquire_slot(self) -> float:
        """
        Block until a request may be sent, then record it.

        Returns:
            Total seconds spent waiting
        """
        waited = 0.0
        while True:
            now = self._clock()
            self._purge(now)

            limit = max(1, int(self._max_requests()))
            if len(self._requests) < limit:
                self._requests.append(now)
                return waited

            wait_time = self.window - (now - self._requests[0]) + self.safety_margin
            wait_time = max(wait_time, self.safety_margin)
            logger.info(f"Rate limit reached ({limit}/min), waiting {wait_time:.1f}s...")
            self._sleep(wait_time)
            waited += wait_time

    def reset(self) -> None:
        self._requests.clear()

    def _purge(self, now: float) -> None:
        while self._requests and now - self._requests[0] >= self.window:
            self._requests.popleft()
