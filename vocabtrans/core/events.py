"""
Event emission and cancellation for batch runs.

The orchestrator reports progress and log lines through an ``EventSink`` so
the engine stays independent of any UI. Sinks must not disturb the run:
the orchestrator swallows (and debug-logs) anything a sink raises.
"""

import logging
import threading
from typing import Dict

logger = logging.getLogger(__name__)

LOG_LEVELS = ("info", "success", "warning", "error")


class EventSink:
    """No-op base sink; override what you need."""

    def on_progress(self, done_batches: int, total_batches: int,
                    done_words: int, total_words: int) -> None:
        pass

    def on_log_event(self, message: str, level: str = "info") -> None:
        pass

    def on_partial_results(self, results: Dict) -> None:
        """Called after every batch with everything translated so far."""
        pass


class LoggingEventSink(EventSink):
    """
    Sends run events to the ``vocabtrans`` logger.

    ``log_level`` follows the host settings: ``minimal`` drops info events,
    ``standard`` drops info events tagged as debug chatter, ``detailed``
    keeps everything.
    """

    def __init__(self, log_level: str = "detailed", target: logging.Logger = None):
        self.log_level = log_level
        self._logger = target or logging.getLogger("vocabtrans.events")

    def should_emit(self, message: str, level: str) -> bool:
        if level != "info":
            return True
        if self.log_level == "minimal":
            return False
        if self.log_level == "standard" and "DEBUG" in message:
            return False
        return True

    def on_log_event(self, message: str, level: str = "info") -> None:
        if not self.should_emit(message, level):
            return
        if level == "error":
            self._logger.error(message)
        elif level == "warning":
            self._logger.warning(message)
        else:
            self._logger.info(message)

    def on_progress(self, done_batches: int, total_batches: int,
                    done_words: int, total_words: int) -> None:
        percent = int(done_words / total_words * 100) if total_words else 0
        self._logger.debug(
            f"Progress: {done_batches}/{total_batches} batches, "
            f"{done_words}/{total_words} words ({percent}%)"
        )


class CancellationToken:
    """Cooperative cancellation flag shared between the caller and the run."""

    def __init__(self):
        self._event = threading.Event()

    def is_cancel_requested(self) -> bool:
        return self._event.is_set()

    def request_cancel(self) -> None:
        logger.info("Cancellation requested")
        self._event.set()

    def reset_cancel(self) -> None:
        self._event.clear()
