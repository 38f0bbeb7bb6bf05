"""Per-run operation summary bookkeeping."""

from datetime import datetime
from typing import Any, Dict, Optional

from vocabtrans.core.classifier import ErrorCategory, categorize_error, get_suggestion
from vocabtrans.core.models import OperationSummary, RunStatus


class OperationSummaryManager:
    """Creates, updates and finalizes the summary of the current run."""

    def __init__(self):
        self._current: Optional[OperationSummary] = None

    @property
    def current(self) -> Optional[OperationSummary]:
        return self._current

    def start_operation(self, operation_id: str, total_words: int) -> OperationSummary:
        self._current = OperationSummary(operation_id=operation_id, total_words=total_words)
        return self._current

    def record_success(self, words: int) -> None:
        if self._current is None:
            return
        self._current.success_count += 1
        self._current.processed_words += words

    def record_failure(
        self,
        error: Any,
        words: int,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorCategory:
        """Count a failed batch under its category and collect the suggestion."""
        category = categorize_error(error)
        if self._current is None:
            return category

        self._current.failure_count += 1
        self._current.processed_words += words
        counts = self._current.error_categories
        counts[category] = counts.get(category, 0) + 1

        suggestion = get_suggestion(category, context)
        if suggestion not in self._current.suggestions:
            self._current.suggestions.append(suggestion)
        return category

    def complete_operation(
        self,
        status: RunStatus,
        failure_reason: Optional[str] = None
    ) -> OperationSummary:
        """
        Finalize the current summary.

        Raises:
            RuntimeError: no operation is in progress (already finalized)
        """
        if self._current is None:
            raise RuntimeError("No operation in progress")

        summary = self._current
        summary.end_time = datetime.now()
        summary.final_status = status
        if failure_reason:
            summary.failure_reason = failure_reason

        self._current = None
        return summary


def format_summary_report(summary: OperationSummary) -> str:
    """Plain-text report for logs and terminals."""
    categories = ", ".join(
        f"{getattr(category, 'value', category)}: {count}"
        for category, count in summary.error_categories.items()
    )
    lines = [
        "OPERATION SUMMARY",
        "-" * 32,
        f"Status: {summary.final_status.value.upper()}",
        f"Duration: {round(summary.duration)}s",
        f"Operation: {summary.operation_id}",
        f"Total Words: {summary.total_words}",
        f"Processed: {summary.processed_words}",
        f"Success: {summary.success_count}",
        f"Failures: {summary.failure_count}",
        f"Error Types: {categories or 'None'}",
        "Suggestions:",
    ]
    lines.extend(f"- {suggestion}" for suggestion in summary.suggestions)
    if summary.failure_reason:
        lines.append(f"Failure Reason: {summary.failure_reason}")
    lines.append("-" * 32)
    return "\n".join(lines)
