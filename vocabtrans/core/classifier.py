"""
Error classification for the batch engine.

Upstream error text is not a versioned contract, so failures that arrive
without a structured category are sorted by an ordered set of message and
status heuristics. The category then selects the retry policy and the
remediation hint shown to the user.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Fixed error taxonomy."""
    MODEL = "model"
    JSON = "json"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    SERVER = "server"
    PARSE = "parse"
    VALIDATION = "validation"
    CAPACITY = "capacity"
    MODEL_CAPACITY = "model_capacity"


@dataclass(frozen=True)
class RetryPolicy:
    """How a category may be retried."""
    retryable: bool
    max_retries: int
    backoff_multiplier: float


DEFAULT_POLICY = RetryPolicy(retryable=True, max_retries=1, backoff_multiplier=1)

ERROR_POLICIES: Dict[ErrorCategory, RetryPolicy] = {
    ErrorCategory.MODEL: RetryPolicy(False, 0, 1),
    ErrorCategory.RATE_LIMIT: RetryPolicy(True, 2, 2),
    ErrorCategory.JSON: RetryPolicy(True, 1, 1),
    ErrorCategory.NETWORK: RetryPolicy(True, 3, 2),
    ErrorCategory.SERVER: RetryPolicy(True, 2, 1.5),
    ErrorCategory.PARSE: RetryPolicy(True, 1, 1),
    ErrorCategory.VALIDATION: RetryPolicy(False, 0, 1),
    ErrorCategory.CAPACITY: RetryPolicy(True, 2, 3),
    ErrorCategory.MODEL_CAPACITY: RetryPolicy(True, 1, 5),
}

_CAPACITY_PHRASES = ("over capacity", "currently over capacity", "capacity exceeded")
_MODEL_PHRASES = (
    "model",
    "does not exist",
    "not available",
    "you do not have access",
    "model_not_available",
    "model_required",
)
_RATE_LIMIT_PHRASES = ("rate limit", "too many requests", "rate_limit")
_JSON_PHRASES = ("json", "parse", "invalid json", "json_validate_failed")
_NETWORK_PHRASES = ("network", "timeout", "timed out", "fetch", "connection", "aborted")
_PARSE_PHRASES = ("parsing", "invalid response", "unexpected token")
_VALIDATION_PHRASES = ("valid", "validation", "invalid")


def _status_of(error: Any) -> Optional[int]:
    """Best-effort HTTP status lookup on an arbitrary error object."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _contains_any(text: str, phrases) -> bool:
    return any(phrase in text for phrase in phrases)


class ErrorClassifier:
    """Maps failures to categories, retry policies and suggestions."""

    @staticmethod
    def categorize_error(error: Any) -> ErrorCategory:
        """
        Classify a failure.

        Errors raised by this package carry their category already; anything
        else falls back to ordered substring checks (first match wins).

        Args:
            error: Exception or any object with a message

        Returns:
            The error category (SERVER when nothing matches)
        """
        category = getattr(error, "category", None)
        if isinstance(category, ErrorCategory):
            return category

        message = (getattr(error, "message", None) or str(error)).lower()
        status = _status_of(error)

        if _contains_any(message, _CAPACITY_PHRASES):
            return ErrorCategory.CAPACITY

        if ("model" in message or "llama" in message) and "capacity" in message:
            return ErrorCategory.MODEL_CAPACITY

        if _contains_any(message, _MODEL_PHRASES):
            return ErrorCategory.MODEL

        if _contains_any(message, _RATE_LIMIT_PHRASES) or status == 429:
            return ErrorCategory.RATE_LIMIT

        if _contains_any(message, _JSON_PHRASES):
            return ErrorCategory.JSON

        if _contains_any(message, _NETWORK_PHRASES):
            return ErrorCategory.NETWORK

        if status is not None and 500 <= status < 600:
            return ErrorCategory.SERVER

        if _contains_any(message, _PARSE_PHRASES):
            return ErrorCategory.PARSE

        if _contains_any(message, _VALIDATION_PHRASES):
            return ErrorCategory.VALIDATION

        return ErrorCategory.SERVER

    @staticmethod
    def get_error_policy(category: Optional[ErrorCategory]) -> RetryPolicy:
        return ERROR_POLICIES.get(category, DEFAULT_POLICY)

    @staticmethod
    def get_suggestion(category: Optional[ErrorCategory],
                       context: Optional[Dict[str, Any]] = None) -> str:
        """Human-readable remediation for a category."""
        model = (context or {}).get("model") or "current model"

        if category == ErrorCategory.MODEL:
            return f'Switch to a different model. "{model}" is not available.'
        if category == ErrorCategory.RATE_LIMIT:
            return "Reduce request rate or switch to a high-limit model."
        if category == ErrorCategory.JSON:
            return "Try reducing batch size or disabling JSON format temporarily."
        if category == ErrorCategory.NETWORK:
            return "Check internet connection and try again."
        if category == ErrorCategory.SERVER:
            return "Service temporarily unavailable. Try again in a few minutes."
        if category == ErrorCategory.PARSE:
            return "Response format issue. Try simplifying the request."
        if category == ErrorCategory.VALIDATION:
            return "Check input data format and requirements."
        if category == ErrorCategory.CAPACITY:
            return "Service is currently at capacity. Wait a moment and try again."
        if category == ErrorCategory.MODEL_CAPACITY:
            return f'The model "{model}" is currently overloaded. Try a different model or wait.'
        return "Unknown error occurred. Check logs for details."


# Module-level shortcuts
categorize_error = ErrorClassifier.categorize_error
get_error_policy = ErrorClassifier.get_error_policy
get_suggestion = ErrorClassifier.get_suggestion
