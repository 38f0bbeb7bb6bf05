"""
Core data models for VocabTrans.

This module defines the records passed between the batch engine, the
translation backend and the persistence layer.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Any
from datetime import datetime
import re


# Characters ignored when checking that a definition carries real content
_DEFINITION_SYMBOLS = re.compile(r"[\s.,;:!?\-()]")

# Punctuation debris produced by broken upstream generations
_CORRUPTED_DEFINITIONS = ("، .", ", .")
_CORRUPTED_DEFINITION_VALUES = (",", "،")


def normalize_word(word: str) -> str:
    """Return the case-insensitive key used for caching and result maps."""
    return word.strip().lower()


class RunStatus(str, Enum):
    """Lifecycle of a single batch run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class TranslationResult:
    """Translation of one vocabulary word."""
    translation: str = ""
    definition: str = ""
    example_source: str = ""
    example_target: str = ""

    @classmethod
    def empty(cls) -> TranslationResult:
        """Sentinel for a word the service returned nothing for."""
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> TranslationResult:
        """Build from the wire format (camelCase example keys)."""
        data = data or {}
        return cls(
            translation=str(data.get("translation") or ""),
            definition=str(data.get("definition") or ""),
            example_source=str(data.get("exampleSource") or ""),
            example_target=str(data.get("exampleTarget") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "translation": self.translation,
            "definition": self.definition,
            "exampleSource": self.example_source,
            "exampleTarget": self.example_target,
        }

    def is_empty(self) -> bool:
        """True when every field is blank."""
        return not any(
            value.strip()
            for value in (self.translation, self.definition,
                          self.example_source, self.example_target)
        )

    def is_valid(self) -> bool:
        """
        Check that the result is complete enough to keep.

        A valid result has a translation, a definition of at least ten
        characters (five once symbols are stripped) that is not punctuation
        debris, and two examples of at least three characters each.
        """
        if not self.translation.strip():
            return False

        definition = self.definition.strip()
        if len(definition) < 10:
            return False
        if len(_DEFINITION_SYMBOLS.sub("", definition)) < 5:
            return False
        if any(pattern in self.definition for pattern in _CORRUPTED_DEFINITIONS):
            return False
        if definition in _CORRUPTED_DEFINITION_VALUES:
            return False

        if len(self.example_source.strip()) < 3:
            return False
        if len(self.example_target.strip()) < 3:
            return False

        return True


@dataclass
class CacheEntry:
    """Timestamped cache record (epoch seconds)."""
    ts: float
    data: TranslationResult

    def to_dict(self) -> Dict[str, Any]:
        return {"ts": self.ts, "data": self.data.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CacheEntry:
        return cls(ts=float(data.get("ts", 0.0)),
                   data=TranslationResult.from_dict(data.get("data")))


@dataclass
class UsageStats:
    """Aggregate batch counters kept across runs."""
    total_words_processed: int = 0
    successful_batches: int = 0
    failed_batches: int = 0
    total_batches: int = 0
    total_batch_size: int = 0

    def record(self, words: int, ok: bool) -> None:
        words = max(0, int(words))
        self.total_words_processed += words
        self.total_batches += 1
        self.total_batch_size += words
        if ok:
            self.successful_batches += 1
        else:
            self.failed_batches += 1

    @property
    def avg_batch_size(self) -> float:
        if self.total_batches == 0:
            return 0.0
        return round(self.total_batch_size / self.total_batches, 1)

    @property
    def success_rate(self) -> int:
        """Successful batches as a whole percentage."""
        if self.total_batches == 0:
            return 0
        return round(self.successful_batches / self.total_batches * 100)

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalWordsProcessed": self.total_words_processed,
            "successfulBatches": self.successful_batches,
            "failedBatches": self.failed_batches,
            "totalBatches": self.total_batches,
            "totalBatchSize": self.total_batch_size,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> UsageStats:
        data = data or {}
        return cls(
            total_words_processed=int(data.get("totalWordsProcessed", 0)),
            successful_batches=int(data.get("successfulBatches", 0)),
            failed_batches=int(data.get("failedBatches", 0)),
            total_batches=int(data.get("totalBatches", 0)),
            total_batch_size=int(data.get("totalBatchSize", 0)),
        )


@dataclass
class OperationSummary:
    """Per-run aggregate, finalized exactly once."""
    operation_id: str
    total_words: int
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    processed_words: int = 0
    success_count: int = 0
    failure_count: int = 0
    # Keys are ErrorCategory members
    error_categories: Dict[Any, int] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)
    final_status: RunStatus = RunStatus.RUNNING
    failure_reason: Optional[str] = None

    @property
    def duration(self) -> float:
        """Run duration in seconds (0 while running)."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "total_words": self.total_words,
            "processed_words": self.processed_words,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "error_categories": {
                getattr(category, "value", str(category)): count
                for category, count in self.error_categories.items()
            },
            "suggestions": list(self.suggestions),
            "final_status": self.final_status.value,
            "failure_reason": self.failure_reason,
        }
