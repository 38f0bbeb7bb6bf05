"""Unit tests for error classification."""

import pytest
from vocabtrans.core.classifier import (
    ERROR_POLICIES,
    ErrorCategory,
    ErrorClassifier,
    categorize_error,
    get_error_policy,
    get_suggestion,
)
from vocabtrans.core.exceptions import (
    AllEndpointsFailedError,
    CircuitOpenError,
    ThresholdAbortError,
    TranslationServiceError,
    JSON_THRESHOLD,
    RATE_LIMIT_THRESHOLD,
)


class HttpError(Exception):
    """Error carrying an HTTP status like a client library would."""

    def __init__(self, message, status):
        super().__init__(message)
        self.status = status


class TestCategorizeError:
    """Test the ordered heuristics."""

    @pytest.mark.parametrize("message,expected", [
        ("The service is currently over capacity", ErrorCategory.CAPACITY),
        ("llama capacity reached", ErrorCategory.MODEL_CAPACITY),
        ("The model `foo` does not exist", ErrorCategory.MODEL),
        ("You do not have access to this resource", ErrorCategory.MODEL),
        ("Too many requests", ErrorCategory.RATE_LIMIT),
        ("json_validate_failed", ErrorCategory.JSON),
        ("Request timed out", ErrorCategory.NETWORK),
        ("Failed to fetch", ErrorCategory.NETWORK),
        ("Unexpected token < in response", ErrorCategory.PARSE),
        ("Input is invalid", ErrorCategory.VALIDATION),
        ("Something odd happened", ErrorCategory.SERVER),
    ])
    def test_message_heuristics(self, message, expected):
        assert categorize_error(Exception(message)) == expected

    def test_first_match_wins(self):
        """Capacity phrases take precedence over the model check."""
        error = Exception("model is currently over capacity")
        assert categorize_error(error) == ErrorCategory.CAPACITY

    def test_status_429(self):
        assert categorize_error(HttpError("HTTP error", 429)) == ErrorCategory.RATE_LIMIT

    def test_status_5xx(self):
        assert categorize_error(HttpError("HTTP error", 503)) == ErrorCategory.SERVER

    def test_message_checked_before_status(self):
        """A timeout message wins over a 5xx status."""
        assert categorize_error(HttpError("gateway timeout", 504)) == ErrorCategory.NETWORK

    def test_explicit_category(self):
        """Structured errors keep the category they were raised with."""
        error = TranslationServiceError("model is great", category=ErrorCategory.NETWORK)
        assert categorize_error(error) == ErrorCategory.NETWORK

    def test_structured_errors(self):
        assert categorize_error(CircuitOpenError("svc", 10)) == ErrorCategory.SERVER
        assert categorize_error(AllEndpointsFailedError([])) == ErrorCategory.SERVER
        assert categorize_error(ThresholdAbortError(JSON_THRESHOLD, 2)) == ErrorCategory.JSON
        assert categorize_error(ThresholdAbortError(RATE_LIMIT_THRESHOLD, 2)) == ErrorCategory.RATE_LIMIT

    def test_plain_string(self):
        assert ErrorClassifier.categorize_error("connection refused") == ErrorCategory.NETWORK


class TestPolicies:
    """Test the fixed retry policy table."""

    def test_every_category_has_a_policy(self):
        assert set(ERROR_POLICIES) == set(ErrorCategory)

    @pytest.mark.parametrize("category,retryable,max_retries,multiplier", [
        (ErrorCategory.MODEL, False, 0, 1),
        (ErrorCategory.RATE_LIMIT, True, 2, 2),
        (ErrorCategory.JSON, True, 1, 1),
        (ErrorCategory.NETWORK, True, 3, 2),
        (ErrorCategory.SERVER, True, 2, 1.5),
        (ErrorCategory.PARSE, True, 1, 1),
        (ErrorCategory.VALIDATION, False, 0, 1),
        (ErrorCategory.CAPACITY, True, 2, 3),
        (ErrorCategory.MODEL_CAPACITY, True, 1, 5),
    ])
    def test_policy_rows(self, category, retryable, max_retries, multiplier):
        policy = get_error_policy(category)
        assert policy.retryable is retryable
        assert policy.max_retries == max_retries
        assert policy.backoff_multiplier == multiplier

    def test_unknown_category_gets_default(self):
        policy = get_error_policy(None)
        assert policy.retryable
        assert policy.max_retries == 1


def test_suggestions_interpolate_model():
    """Model suggestions name the configured model."""
    text = get_suggestion(ErrorCategory.MODEL, {"model": "llama-x"})
    assert '"llama-x"' in text

    assert "current model" in get_suggestion(ErrorCategory.MODEL_CAPACITY)
    assert get_suggestion(None).startswith("Unknown error")
