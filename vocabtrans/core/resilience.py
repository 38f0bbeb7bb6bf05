"""Circuit breaker and exponential backoff for the translation service."""

import logging
import time
from enum import Enum
from typing import Callable, TypeVar

from vocabtrans.core.exceptions import (
    BackoffExhaustedError,
    CircuitOpenError,
    OperationCancelledError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Gate that stops calling a failing service and probes it after a cooldown.

    After ``failure_threshold`` consecutive failures the breaker opens and
    rejects calls until ``reset_timeout`` seconds have passed since the last
    failure. The next call is then let through (half-open); success closes
    the breaker, failure re-opens it.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.time
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self.failure_count = 0
        self.last_failure_time = 0.0
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        return self._state

    def execute(self, operation: Callable[[], T]) -> T:
        """
        Run ``operation`` through the breaker.

        Raises:
            CircuitOpenError: breaker is open and the cooldown has not elapsed
        """
        if self._state == CircuitState.OPEN:
            elapsed = self._clock() - self.last_failure_time
            if elapsed < self.reset_timeout:
                raise CircuitOpenError(self.name, retry_in=self.reset_timeout - elapsed)
            logger.info(f"Circuit breaker {self.name} half-open, probing service")
            self._state = CircuitState.HALF_OPEN

        try:
            result = operation()
        except OperationCancelledError:
            raise
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def reset(self) -> None:
        self.failure_count = 0
        self.last_failure_time = 0.0
        self._state = CircuitState.CLOSED

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info(f"Circuit breaker {self.name} closed")
        self.failure_count = 0
        self._state = CircuitState.CLOSED

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    f"Circuit breaker {self.name} opened after {self.failure_count} failures"
                )
            self._state = CircuitState.OPEN


class ExponentialBackoff:
    """Bounded, capped backoff counter for transient network stalls."""

    def __init__(
        self,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        max_attempts: int = 5,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self._sleep = sleep
        self.attempt = 0

    @property
    def current_delay(self) -> float:
        """Delay the next ``wait()`` would sleep."""
        return min(self.base_delay * (2 ** self.attempt), self.max_delay)

    def wait(self) -> float:
        """
        Sleep for the current delay and advance the attempt counter.

        Returns:
            Seconds slept

        Raises:
            BackoffExhaustedError: after ``max_attempts`` waits
        """
        if self.attempt >= self.max_attempts:
            raise BackoffExhaustedError(self.attempt)

        delay = self.current_delay
        self._sleep(delay)
        self.attempt += 1
        return delay

    def reset(self) -> None:
        self.attempt = 0
