"""
Batch translation orchestrator for VocabTrans.

This module drives a whole run: it serves what it can from the cache,
orders and partitions the remaining words, pushes batches one at a time
through the rate limiter and circuit breaker, and decides after every
failure whether to skip, retry in place, or abort the run. Progress is
persisted after every batch so an abort never loses finished work.
"""

from __future__ import annotations
import logging
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Set

from vocabtrans.core.batching import (
    AdaptiveBatchController,
    create_batches,
    prioritize_words,
    smart_batch_size,
)
from vocabtrans.core.classifier import (
    ErrorCategory,
    RetryPolicy,
    categorize_error,
    get_error_policy,
)
from vocabtrans.core.events import CancellationToken, EventSink, LoggingEventSink
from vocabtrans.core.exceptions import (
    AllEndpointsFailedError,
    BackoffExhaustedError,
    CircuitOpenError,
    ConfigurationError,
    OperationCancelledError,
    ThresholdAbortError,
    TranslationRunError,
)
from vocabtrans.core.models import (
    OperationSummary,
    RunStatus,
    TranslationResult,
    UsageStats,
    normalize_word,
)
from vocabtrans.core.rate_limiter import SlidingWindowRateLimiter
from vocabtrans.core.resilience import CircuitBreaker, ExponentialBackoff
from vocabtrans.core.settings import TranslatorSettings
from vocabtrans.core.summary import OperationSummaryManager, format_summary_report
from vocabtrans.translation.base import TranslationBackend, TranslationRequest
from vocabtrans.utils.cache import ResultCache, SWEEP_INTERVAL
from vocabtrans.utils.persistence import (
    CACHE_STORE_KEY,
    USAGE_STATS_KEY,
    MemoryStateStore,
    StateStore,
    empty_state,
)

logger = logging.getLogger(__name__)

MAX_ADAPTIVE_BATCH_SIZE = 20
INTER_BATCH_DELAY = 2.0
LOW_RESOURCE_INTER_BATCH_DELAY = 3.0
RETRY_BASE_DELAY = 5.0  # Scaled by the category's backoff multiplier

MIXED_SCRIPT_MARKER = "mixed-script validation"

# Categories whose retries are paced through the global backoff deadline
_DEADLINE_BACKOFF_CATEGORIES = (
    ErrorCategory.RATE_LIMIT,
    ErrorCategory.CAPACITY,
    ErrorCategory.MODEL_CAPACITY,
)


class BatchOrchestrator:
    """
    Sequential, failure-aware batch driver.

    Exactly one batch is in flight at a time. The orchestrator owns the
    result map, the cache store, the usage stats and the operation summary
    for the duration of a run; per-run counters live on the instance and
    are reset when a run starts.
    """

    def __init__(
        self,
        settings: TranslatorSettings,
        backend: TranslationBackend,
        state_store: Optional[StateStore] = None,
        events: Optional[EventSink] = None,
        cancel_token: Optional[CancellationToken] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.settings = settings
        self.backend = backend
        self.state_store = state_store or MemoryStateStore()
        self.events = events or LoggingEventSink(settings.log_level)
        self.cancel_token = cancel_token or CancellationToken()
        self._clock = clock
        self._sleep = sleep
        self._persist_lock = threading.Lock()

        state = self._load_state()
        self.cache = ResultCache.from_dict(
            state.get(CACHE_STORE_KEY), ttl_hours=settings.cache_ttl_hours, clock=clock
        )
        self.usage_stats = UsageStats.from_dict(state.get(USAGE_STATS_KEY))

        self.rate_limiter = SlidingWindowRateLimiter(
            settings.effective_rpm, clock=clock, sleep=sleep
        )
        self.circuit_breaker = CircuitBreaker("TranslationService", clock=clock)
        self.network_backoff = ExponentialBackoff(sleep=sleep)
        self.summary_manager = OperationSummaryManager()

        self.status = RunStatus.IDLE
        self.last_summary: Optional[OperationSummary] = None
        self.adaptive_controller: Optional[AdaptiveBatchController] = None

        self.consecutive_non_model_failures = 0
        self.failed_words: Set[str] = set()
        self._retry_counts: Dict[ErrorCategory, int] = {}
        self._backoff_until = 0.0

    @classmethod
    def from_settings(
        cls,
        settings: TranslatorSettings,
        state_store: Optional[StateStore] = None,
        events: Optional[EventSink] = None,
        on_settings_changed: Optional[Callable[[TranslatorSettings], None]] = None,
        session=None
    ) -> BatchOrchestrator:
        """Build an orchestrator wired to the translation worker backend."""
        from vocabtrans.translation.backends.worker_backend import EndpointFailoverClient

        token = CancellationToken()
        backend = EndpointFailoverClient(
            settings,
            session=session,
            cancel_token=token,
            on_settings_changed=on_settings_changed,
        )
        return cls(settings, backend, state_store=state_store, events=events, cancel_token=token)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def process_words_in_batches(
        self,
        words: List[str],
        source_lang: str,
        target_lang: str
    ) -> Dict[str, TranslationResult]:
        """
        Translate ``words`` and return results keyed by normalized word.

        Cached results are reused; the rest is sent in prioritized batches.
        A cancelled run returns what it has.

        Raises:
            TranslationRunError: the run was aborted (partial results and
                the finalized summary are attached)
        """
        self._reset_run_state()
        results: Dict[str, TranslationResult] = {}

        misses: List[str] = []
        seen: Set[str] = set()
        for word in words:
            key = normalize_word(word)
            if not key or key in seen:
                continue
            seen.add(key)
            cached = self.cache.get(key)
            if cached is not None and cached.is_valid():
                results[key] = cached
            else:
                misses.append(word.strip())

        total_words = len(seen)
        self.status = RunStatus.RUNNING
        self.summary_manager.start_operation(uuid.uuid4().hex[:12], total_words)

        if self.settings.adaptive_batching_active:
            initial_size = smart_batch_size(self.settings.translation_quality)
            self.adaptive_controller = AdaptiveBatchController(
                initial_size, MAX_ADAPTIVE_BATCH_SIZE
            )
            self._emit(f"Smart Auto Mode: adaptive batching enabled (starting: {initial_size})")
        else:
            self.adaptive_controller = None

        batches = create_batches(prioritize_words(misses), self._batch_size())
        total_batches = len(batches)
        self._emit(
            f"Processing {total_words} words ({len(misses)} new, {len(results)} from cache) "
            f"in {total_batches} batches"
        )

        index = 0
        while index < total_batches:
            batch = batches[index]

            self._wait_for_global_backoff()

            if self.cancel_token.is_cancel_requested():
                self._emit("Cancellation requested - stopping batch processing", "warning")
                return self._finish_cancelled(results)

            if self.settings.enable_rate_limiting:
                self.rate_limiter.acquire_slot()

            request = TranslationRequest(
                words=batch,
                source_lang=source_lang,
                target_lang=target_lang,
                model=self.settings.model,
                settings=self.settings.request_settings(),
            )

            try:
                response = self.circuit_breaker.execute(
                    lambda: self.backend.translate_batch(request)
                )
            except OperationCancelledError:
                self._emit("Cancellation requested - stopping batch processing", "warning")
                return self._finish_cancelled(results)
            except Exception as error:
                if self._handle_batch_failure(error, batch, index, results):
                    self._emit(f"Retrying batch {index + 1} ({categorize_error(error).value})")
                    continue
                index += 1
                continue

            self._handle_batch_success(response.translations, batch, results)
            self._progress(index + 1, total_batches, len(results), total_words)

            index += 1
            if index < total_batches:
                self._sleep(self._inter_batch_delay())

        self._persist()
        self._emit(
            f"Processing completed: {len(results)}/{total_words} words translated successfully",
            "success",
        )
        self._complete(RunStatus.COMPLETED)
        return results

    def _handle_batch_success(
        self,
        translations: Dict[str, TranslationResult],
        batch: List[str],
        results: Dict[str, TranslationResult]
    ) -> None:
        for word, result in translations.items():
            key = normalize_word(word)
            results[key] = result
            if result.is_valid():
                self.cache.set(key, result)

        self.consecutive_non_model_failures = 0
        self.usage_stats.record(len(batch), ok=True)
        self.summary_manager.record_success(len(batch))
        if self.adaptive_controller is not None:
            self.adaptive_controller.on_success()

        self._save_partial_results(results)
        self._emit(f"Saved partial results: {len(results)} words completed", "success")

    def _handle_batch_failure(
        self,
        error: Exception,
        batch: List[str],
        index: int,
        results: Dict[str, TranslationResult]
    ) -> bool:
        """
        Apply the failure tiers to a failed batch.

        Returns:
            True to retry the same batch, False to move on

        Raises:
            TranslationRunError: the failure ends the run
        """
        category = categorize_error(error)
        message = getattr(error, "message", None) or str(error)
        self._emit(f"Batch {index + 1} failed: {message} (Category: {category.value})", "error")

        self.usage_stats.record(len(batch), ok=False)
        self.summary_manager.record_failure(error, len(batch), self._suggestion_context())
        if results:
            self._save_partial_results(results)

        if MIXED_SCRIPT_MARKER in str(error).lower():
            self.failed_words.update(normalize_word(word) for word in batch)
            self._emit("Mixed-script validation failed for batch - skipping and continuing", "warning")
            return False

        if category == ErrorCategory.MODEL:
            self._emit("MODEL ERROR - stopping all operations immediately", "error")
            self._abort(f"Model error: {message}", category, error, results)

        if isinstance(error, ThresholdAbortError):
            self._emit(f"ABORT THRESHOLD: {error.reason}.", "error")
            self._abort(f"Threshold abort: {error.reason}", category, error, results)

        if category == ErrorCategory.SERVER or isinstance(
            error, (CircuitOpenError, AllEndpointsFailedError, ConfigurationError)
        ):
            self._emit("OPERATION-WIDE FAILURE - stopping all operations immediately", "error")
            self._abort(f"Infrastructure error: {message}", category, error, results)

        policy = get_error_policy(category)
        retries = self._retry_counts.get(category, 0)
        if policy.retryable and retries < policy.max_retries:
            self._retry_counts[category] = retries + 1
            try:
                self._wait_before_retry(category, policy, retries + 1)
            except BackoffExhaustedError as backoff_error:
                self._abort(f"Retry budget exhausted: {backoff_error.message}",
                            category, backoff_error, results)
            return True

        if self.adaptive_controller is not None:
            self.adaptive_controller.on_failure()

        cap = max(1, self.settings.max_non_model_failures)
        self.consecutive_non_model_failures += 1
        if self.consecutive_non_model_failures >= cap:
            self._emit(f"NON-MODEL FAILURE CAP REACHED ({cap}). Aborting.", "error")
            self._abort(
                f"Non-model failure limit reached ({self.consecutive_non_model_failures} failures)",
                category, error, results,
            )

        self._emit(f"Skipping failed batch {index + 1}, continuing with next batches")
        return False

    def _wait_before_retry(self, category: ErrorCategory, policy: RetryPolicy, attempt: int) -> None:
        if category == ErrorCategory.NETWORK:
            delay = self.network_backoff.current_delay
            self._emit(
                f"Network error - retrying after {delay:.1f}s "
                f"(attempt {attempt}/{policy.max_retries})",
                "warning",
            )
            self.network_backoff.wait()
            return

        self.network_backoff.reset()
        if category in _DEADLINE_BACKOFF_CATEGORIES:
            delay = RETRY_BASE_DELAY * policy.backoff_multiplier
            self._backoff_until = max(self._backoff_until, self._clock() + delay)
            self._emit(f"{category.value} - waiting {delay:.0f}s before retry", "warning")

    def _abort(
        self,
        reason: str,
        category: ErrorCategory,
        error: Exception,
        results: Dict[str, TranslationResult]
    ) -> None:
        summary = self._complete(RunStatus.FAILED, reason)
        self._persist()
        raise TranslationRunError(
            reason,
            category=category,
            summary=summary,
            partial_results=dict(results),
            context=self._suggestion_context(),
        ) from error

    def _finish_cancelled(self, results: Dict[str, TranslationResult]) -> Dict[str, TranslationResult]:
        self._save_partial_results(results)
        self._complete(RunStatus.CANCELLED, "Cancelled by user")
        return results

    def _complete(self, status: RunStatus, reason: Optional[str] = None) -> OperationSummary:
        summary = self.summary_manager.complete_operation(status, reason)
        self.status = status
        self.last_summary = summary
        logger.info("\n" + format_summary_report(summary))
        return summary

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reset_run_state(self) -> None:
        self.backend.reset_session_counters()
        self._retry_counts.clear()
        self.network_backoff.reset()
        self.consecutive_non_model_failures = 0
        self.failed_words = set()
        self._backoff_until = 0.0
        self.last_summary = None

    def _batch_size(self) -> int:
        if self.adaptive_controller is not None:
            return self.adaptive_controller.batch_size
        return max(1, int(self.settings.batch_size))

    def _inter_batch_delay(self) -> float:
        if self.settings.low_resource_mode:
            return LOW_RESOURCE_INTER_BATCH_DELAY
        return INTER_BATCH_DELAY

    def _wait_for_global_backoff(self) -> None:
        wait = self._backoff_until - self._clock()
        if wait > 0:
            self._emit(f"Global backoff in effect, waiting {wait:.0f}s", "warning")
            self._sleep(wait)

    def _suggestion_context(self) -> Dict[str, str]:
        return {"model": self.settings.model}

    def _load_state(self) -> Dict:
        try:
            return self.state_store.load()
        except Exception as e:
            logger.warning(f"Could not load saved state, starting empty: {e}")
            return empty_state()

    def _persist(self) -> None:
        """Save cache and usage stats; failures are logged, never raised."""
        state = {
            CACHE_STORE_KEY: self.cache.to_dict(),
            USAGE_STATS_KEY: self.usage_stats.to_dict(),
        }
        with self._persist_lock:
            try:
                self.state_store.save(state)
            except Exception as e:
                logger.warning(f"Could not persist state: {e}")
                self._emit(f"Could not save cache: {e}", "warning")

    def _save_partial_results(self, results: Dict[str, TranslationResult]) -> None:
        try:
            self.events.on_partial_results(dict(results))
        except Exception as e:
            logger.warning(f"Could not save partial results: {e}")
        self._persist()

    def _emit(self, message: str, level: str = "info") -> None:
        try:
            self.events.on_log_event(message, level)
        except Exception as e:
            logger.debug(f"Event sink failed (ignored): {e}")

    def _progress(self, done_batches: int, total_batches: int,
                  done_words: int, total_words: int) -> None:
        try:
            self.events.on_progress(done_batches, total_batches, done_words, total_words)
        except Exception as e:
            logger.debug(f"Progress sink failed (ignored): {e}")

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def start_cache_sweeper(self, interval: float = SWEEP_INTERVAL) -> None:
        """Sweep expired cache entries in the background and persist after each sweep."""
        self.cache.start_sweeper(interval, on_sweep=lambda removed: self._persist())

    def stop_cache_sweeper(self) -> None:
        self.cache.stop_sweeper()

    def sweep_cache(self) -> int:
        removed = self.cache.sweep()
        if removed:
            self._persist()
        return removed
