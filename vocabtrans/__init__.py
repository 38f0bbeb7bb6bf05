"""
VocabTrans: resilient batch translation of vocabulary lists

Words are sent in batches to a remote translation worker that may be slow,
rate limited, over capacity or spread across several endpoints. The batch
engine classifies every failure, retries or skips what it can, aborts the
run when continuing would waste the rest of the word list, and persists
finished work after every batch.

Usage:
    from vocabtrans import BatchOrchestrator, TranslatorSettings

    settings = TranslatorSettings(
        model="llama-3.3-70b-versatile",
        primary_endpoint="https://worker.example.com/translate",
    )
    orchestrator = BatchOrchestrator.from_settings(settings)
    results = orchestrator.process_words_in_batches(words, "en", "ar")
"""

__version__ = "1.0.0"
__license__ = "MIT"

from vocabtrans.core.models import (
    TranslationResult,
    CacheEntry,
    UsageStats,
    OperationSummary,
    RunStatus,
    normalize_word
)
from vocabtrans.core.classifier import ErrorCategory, RetryPolicy, ErrorClassifier
from vocabtrans.core.exceptions import (
    VocabTransError,
    TranslationServiceError,
    ThresholdAbortError,
    TranslationRunError,
    ConfigurationError
)
from vocabtrans.core.settings import TranslatorSettings
from vocabtrans.core.events import EventSink, LoggingEventSink, CancellationToken
from vocabtrans.core.orchestrator import BatchOrchestrator
from vocabtrans.translation.base import (
    TranslationBackend,
    TranslationRequest,
    TranslationResponse
)
from vocabtrans.translation.backends import EndpointFailoverClient

__all__ = [
    "__version__",
    "TranslationResult", "CacheEntry", "UsageStats", "OperationSummary",
    "RunStatus", "normalize_word",
    "ErrorCategory", "RetryPolicy", "ErrorClassifier",
    "VocabTransError", "TranslationServiceError", "ThresholdAbortError",
    "TranslationRunError", "ConfigurationError",
    "TranslatorSettings",
    "EventSink", "LoggingEventSink", "CancellationToken",
    "BatchOrchestrator",
    "TranslationBackend", "TranslationRequest", "TranslationResponse",
    "EndpointFailoverClient",
]
