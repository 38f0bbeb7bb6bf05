"""Unit tests for operation summaries."""

import pytest

from vocabtrans.core.classifier import ErrorCategory
from vocabtrans.core.exceptions import TranslationServiceError
from vocabtrans.core.models import RunStatus
from vocabtrans.core.summary import OperationSummaryManager, format_summary_report


class TestOperationSummaryManager:
    """Test summary lifecycle."""

    def test_records_successes_and_failures(self):
        manager = OperationSummaryManager()
        manager.start_operation("op1", total_words=10)

        manager.record_success(4)
        category = manager.record_failure(Exception("Request timed out"), 3)
        manager.record_failure(Exception("connection reset"), 3)

        summary = manager.current
        assert category == ErrorCategory.NETWORK
        assert summary.success_count == 1
        assert summary.failure_count == 2
        assert summary.processed_words == 10
        assert summary.error_categories == {ErrorCategory.NETWORK: 2}
        assert summary.suggestions == ["Check internet connection and try again."]

    def test_model_suggestion_uses_context(self):
        manager = OperationSummaryManager()
        manager.start_operation("op1", total_words=1)
        error = TranslationServiceError("gone", category=ErrorCategory.MODEL)

        manager.record_failure(error, 1, {"model": "llama-x"})
        assert '"llama-x"' in manager.current.suggestions[0]

    def test_complete_finalizes_once(self):
        manager = OperationSummaryManager()
        manager.start_operation("op1", total_words=1)

        summary = manager.complete_operation(RunStatus.FAILED, "Model error: gone")
        assert summary.final_status == RunStatus.FAILED
        assert summary.failure_reason == "Model error: gone"
        assert summary.end_time is not None
        assert manager.current is None

        with pytest.raises(RuntimeError):
            manager.complete_operation(RunStatus.COMPLETED)

    def test_recording_without_operation_is_ignored(self):
        manager = OperationSummaryManager()
        manager.record_success(3)
        assert manager.record_failure(Exception("rate limit"), 1) == ErrorCategory.RATE_LIMIT


def test_format_summary_report():
    manager = OperationSummaryManager()
    manager.start_operation("op-42", total_words=5)
    manager.record_failure(Exception("Too many requests"), 5)
    summary = manager.complete_operation(RunStatus.FAILED, "Threshold abort")

    report = format_summary_report(summary)
    assert "Status: FAILED" in report
    assert "Operation: op-42" in report
    assert "rate_limit: 1" in report
    assert "Failure Reason: Threshold abort" in report
