"""Batch sizing and word ordering."""

import math
from typing import List

QUALITY_BATCH_SIZES = {
    "comprehensive": 3,
    "professional": 5,
    "standard": 8,
}


def smart_batch_size(translation_quality: str) -> int:
    """Starting batch size for adaptive mode; richer output means smaller batches."""
    return QUALITY_BATCH_SIZES.get(translation_quality, 6)


def word_priority(word: str) -> int:
    """Non-ASCII words first, then longer words."""
    has_non_ascii = any(ord(char) > 0x7F for char in word)
    return (1000 if has_non_ascii else 0) + min(len(word), 100)


def prioritize_words(words: List[str]) -> List[str]:
    """
    Order words so the ones most likely to fail validation go first.

    Script-sensitive words spend the run's error budget while it is still
    unspent. The sort is stable, so equal scores keep input order.
    """
    return sorted(words, key=word_priority, reverse=True)


def create_batches(words: List[str], batch_size: int) -> List[List[str]]:
    size = max(1, int(batch_size))
    return [words[i:i + size] for i in range(0, len(words), size)]


class AdaptiveBatchController:
    """
    Grows or shrinks the batch size from recent outcomes.

    Every ``window_size`` consecutive successes add one to the size (up to
    ``max_size``); every two failures shrink it to 70% (down to
    ``min_size``). A failure also clears the success streak.
    """

    def __init__(
        self,
        initial_size: int,
        max_size: int = 20,
        min_size: int = 1,
        window_size: int = 5
    ):
        self.min_size = min_size
        self.max_size = max_size
        self.window_size = window_size
        self.baseline_size = max(min_size, min(initial_size, max_size))
        self.current_size = self.baseline_size
        self.recent_successes = 0
        self.recent_failures = 0

    @property
    def batch_size(self) -> int:
        return self.current_size

    def on_success(self) -> None:
        self.recent_successes += 1
        if self.recent_successes >= self.window_size and self.current_size < self.max_size:
            self.current_size = min(self.current_size + 1, self.max_size)
            self.recent_successes = 0

    def on_failure(self) -> None:
        self.recent_failures += 1
        self.recent_successes = 0
        if self.recent_failures >= 2 and self.current_size > self.min_size:
            self.current_size = max(math.floor(self.current_size * 0.7), self.min_size)
            self.recent_failures = 0

    def reset(self) -> None:
        self.current_size = self.baseline_size
        self.recent_successes = 0
        self.recent_failures = 0
