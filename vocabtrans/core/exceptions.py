"""
Exception hierarchy for VocabTrans.

Failures are turned into structured values at the HTTP boundary so the
batch engine can decide on retries without re-parsing free-form text.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List

from vocabtrans.core.classifier import ErrorCategory, get_suggestion


JSON_THRESHOLD = "JSON_THRESHOLD"
RATE_LIMIT_THRESHOLD = "RATE_LIMIT_THRESHOLD"


class VocabTransError(Exception):
    """Base exception for all VocabTrans errors."""

    category: Optional[ErrorCategory] = None

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        suggestion: Optional[str] = None
    ):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            details: Additional error details
            recoverable: Whether error can be recovered from
            suggestion: Suggested fix or workaround
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value if self.category else None,
            "details": self.details,
            "recoverable": self.recoverable,
            "suggestion": self.suggestion
        }

    def __str__(self) -> str:
        """String representation with suggestion if available."""
        result = self.message
        if self.suggestion:
            result += f"\nSuggestion: {self.suggestion}"
        return result


class TranslationServiceError(VocabTransError):
    """Failure reported by (or while talking to) a translation endpoint."""

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        status: Optional[int] = None,
        url: Optional[str] = None,
        error_hint: Optional[str] = None,
    ):
        """
        Initialize service error.

        Args:
            message: Upstream error text
            category: Category when already known; classified lazily otherwise
            status: HTTP status code, if a response was received
            url: Endpoint that produced the error
            error_hint: ``errorCategory`` field of the upstream error envelope
        """
        details = {"status": status, "url": url, "error_hint": error_hint}
        super().__init__(message, details, recoverable=True)
        self.status = status
        self.url = url
        self.error_hint = error_hint
        if category is not None:
            self.category = category

    def __str__(self) -> str:
        return self.message


class ThresholdAbortError(VocabTransError):
    """Raised when a session error counter crosses its abort threshold."""

    def __init__(self, kind: str, count: int = 0):
        if kind == JSON_THRESHOLD:
            category = ErrorCategory.JSON
            reason = f"Repeated JSON response errors ({count} times)"
        else:
            category = ErrorCategory.RATE_LIMIT
            reason = f"Repeated rate-limit errors ({count} times)"
        super().__init__(
            f"{kind}: {reason}",
            {"kind": kind, "count": count},
            recoverable=False,
            suggestion=get_suggestion(category),
        )
        self.kind = kind
        self.count = count
        self.reason = reason
        self.category = category


class CircuitOpenError(VocabTransError):
    """Raised without calling the service while the breaker is open."""

    category = ErrorCategory.SERVER

    def __init__(self, name: str, retry_in: float = 0.0):
        super().__init__(
            f"Circuit breaker OPEN for {name}. Too many failures.",
            {"breaker": name, "retry_in": retry_in},
            recoverable=True,
            suggestion=f"Wait {retry_in:.0f}s before retrying.",
        )
        self.name = name
        self.retry_in = retry_in


class AllEndpointsFailedError(VocabTransError):
    """Every configured endpoint failed for one request."""

    category = ErrorCategory.SERVER

    def __init__(self, failures: List[Dict[str, Any]]):
        """
        Args:
            failures: One ``{"url", "message", "category"}`` dict per endpoint
        """
        lines = [
            f"{idx}) {failure['url']} -> {failure['message']} "
            f"[{getattr(failure['category'], 'value', failure['category'])}]"
            for idx, failure in enumerate(failures, start=1)
        ]
        message = "All worker endpoints failed"
        if lines:
            message += ":\n" + "\n".join(lines)
        super().__init__(
            message,
            {"failures": failures},
            recoverable=True,
            suggestion=get_suggestion(ErrorCategory.SERVER),
        )
        self.failures = failures

    def __str__(self) -> str:
        return self.message


class BackoffExhaustedError(VocabTransError):
    """Exponential backoff ran out of attempts."""

    category = ErrorCategory.NETWORK

    def __init__(self, attempts: int):
        super().__init__(
            "Maximum backoff attempts reached",
            {"attempts": attempts},
            recoverable=False,
            suggestion=get_suggestion(ErrorCategory.NETWORK),
        )
        self.attempts = attempts


class OperationCancelledError(VocabTransError):
    """Cancellation was observed before issuing more work."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message, recoverable=True)


class TranslationRunError(VocabTransError):
    """A batch run was aborted; carries whatever was translated before."""

    def __init__(
        self,
        reason: str,
        category: Optional[ErrorCategory] = None,
        summary: Optional[Any] = None,
        partial_results: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize run error.

        Args:
            reason: Abort reason recorded in the operation summary
            category: Category of the error that triggered the abort
            summary: Finalized OperationSummary
            partial_results: Results accumulated before the abort
            context: Extra suggestion context (e.g. ``{"model": ...}``)
        """
        super().__init__(
            reason,
            {"category": category.value if category else None},
            recoverable=category != ErrorCategory.MODEL,
            suggestion=get_suggestion(category, context),
        )
        self.reason = reason
        self.category = category
        self.summary = summary
        self.partial_results = partial_results or {}


class ConfigurationError(VocabTransError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        invalid_value: Optional[Any] = None,
        valid_values: Optional[List[Any]] = None
    ):
        """
        Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that's invalid
            invalid_value: Invalid value provided
            valid_values: List of valid values
        """
        details = {
            "config_key": config_key,
            "invalid_value": invalid_value,
            "valid_values": valid_values
        }

        suggestion = None
        if config_key and valid_values:
            suggestion = f"Valid values for {config_key}: {', '.join(map(str, valid_values))}"
        elif config_key:
            suggestion = f"Check configuration for '{config_key}'"

        super().__init__(message, details, recoverable=True, suggestion=suggestion)
        self.config_key = config_key
        self.invalid_value = invalid_value
        self.valid_values = valid_values


class PersistenceError(VocabTransError):
    """Raised when the state store cannot be read or written."""

    def __init__(
        self,
        message: str,
        store_type: Optional[str] = None,
        operation: Optional[str] = None
    ):
        """
        Initialize persistence error.

        Args:
            message: Error message
            store_type: Type of store (json/disk)
            operation: Operation that failed (load/save)
        """
        details = {
            "store_type": store_type,
            "operation": operation
        }
        suggestion = (
            "Persistence errors are non-fatal. Translation continues without saving.\n"
            "To fix: Check disk space and permissions for the state directory."
        )

        super().__init__(message, details, recoverable=True, suggestion=suggestion)
        self.store_type = store_type
        self.operation = operation
