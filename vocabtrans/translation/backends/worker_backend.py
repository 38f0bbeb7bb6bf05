"""Translation worker backend: ordered endpoints with failover and promotion."""

import json
import math
import re
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from ..base import TranslationBackend, TranslationRequest, TranslationResponse
from ..endpoints import EndpointConfig
from ...core.classifier import ErrorCategory, categorize_error
from ...core.events import CancellationToken
from ...core.exceptions import (
    AllEndpointsFailedError,
    ConfigurationError,
    JSON_THRESHOLD,
    OperationCancelledError,
    RATE_LIMIT_THRESHOLD,
    ThresholdAbortError,
    TranslationServiceError,
)
from ...core.models import TranslationResult, normalize_word
from ...core.settings import TranslatorSettings
from ...utils.logger import get_logger

logger = get_logger(__name__)

# Session error budgets
JSON_ERROR_THRESHOLD = 2  # abort when this many JSON 400s are seen
RATE_LIMIT_STRIKES_ALLOWED = 1  # 429s tolerated (each retried once) before abort

DEFAULT_RATE_LIMIT_WAIT = 2.0
MIN_RATE_LIMIT_WAIT = 0.5
MAX_RATE_LIMIT_WAIT = 10.0
RPM_REDUCTION_FACTOR = 0.8

_TRY_AGAIN_PATTERN = re.compile(r"try again in\s+([\d.]+)s", re.IGNORECASE)

# Failures tied to the upstream model rather than to one endpoint
_UPSTREAM_CATEGORIES = (
    ErrorCategory.MODEL,
    ErrorCategory.CAPACITY,
    ErrorCategory.MODEL_CAPACITY,
)


def parse_retry_after(text: str) -> float:
    """Seconds to wait before retrying a 429, from a "try again in Ns" hint."""
    match = _TRY_AGAIN_PATTERN.search(text or "")
    if not match:
        return DEFAULT_RATE_LIMIT_WAIT
    try:
        seconds = float(match.group(1))
    except ValueError:
        return DEFAULT_RATE_LIMIT_WAIT
    return max(MIN_RATE_LIMIT_WAIT, min(MAX_RATE_LIMIT_WAIT, seconds))


class EndpointFailoverClient(TranslationBackend):
    """
    Backend that posts batches to the translation worker.

    Endpoints are tried in order (primary first). Model and capacity
    errors stop the failover at once because another endpoint would hit
    the same upstream model. A JSON-format rejection is retried once on
    the same endpoint with JSON mode off; a 429 is retried once after the
    server's suggested wait and lowers the configured request rate.
    Both feed session counters that abort the whole operation when
    exceeded. An endpoint other than the primary that succeeds is promoted.
    """

    def __init__(
        self,
        settings: TranslatorSettings,
        session: Optional[requests.Session] = None,
        cancel_token: Optional[CancellationToken] = None,
        on_settings_changed: Optional[Callable[[TranslatorSettings], None]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        super().__init__(model=settings.model)
        self.name = "worker"
        self.settings = settings
        self.session = session or requests.Session()
        self.cancel_token = cancel_token
        self._on_settings_changed = on_settings_changed
        self._sleep = sleep

        self.json_error_count = 0
        self.rate_limit_error_count = 0

        self.stats = {
            "total_requests": 0,
            "http_requests": 0,
            "endpoint_failures": 0,
            "json_fallbacks": 0,
            "rate_limited": 0,
            "promotions": 0,
        }

    def reset_session_counters(self) -> None:
        self.json_error_count = 0
        self.rate_limit_error_count = 0

    def is_available(self) -> bool:
        return bool(self.endpoint_config().ordered_urls())

    def endpoint_config(self) -> EndpointConfig:
        return EndpointConfig(
            primary=self.settings.primary_endpoint,
            backups=list(self.settings.backup_endpoints),
        )

    def translate_batch(self, request: TranslationRequest) -> TranslationResponse:
        """Send one batch and map the envelope into results keyed by normalized word."""
        self.stats["total_requests"] += 1
        logger.info(f"Sending {len(request.words)} word(s) to translation worker")

        start = time.time()
        data, url = self.post_with_failover(request.to_payload())

        translations: Dict[str, TranslationResult] = {}
        if isinstance(data, dict) and data.get("success") and isinstance(data.get("translations"), dict):
            for word, value in data["translations"].items():
                translations[normalize_word(word)] = TranslationResult.from_dict(
                    value if isinstance(value, dict) else None
                )

        if not translations:
            raise TranslationServiceError(
                "No translations returned from translation worker",
                category=ErrorCategory.SERVER,
                url=url,
            )

        logger.info(f"Translation worker returned {len(translations)} translation(s)")
        return TranslationResponse(
            translations=translations,
            backend=self.name,
            endpoint=url,
            latency=time.time() - start,
            metadata={"model": request.model},
        )

    def post_with_failover(self, body: Dict[str, Any]) -> Tuple[Any, str]:
        """
        POST ``body`` to each endpoint in order until one succeeds.

        Returns:
            Parsed success envelope and the endpoint that produced it

        Raises:
            TranslationServiceError: model or capacity failure (no failover)
            ThresholdAbortError: a session error budget was exhausted
            AllEndpointsFailedError: every endpoint failed
        """
        urls = self.endpoint_config().ordered_urls()
        if not urls:
            raise ConfigurationError(
                "No valid https translation endpoint configured",
                config_key="primary_endpoint",
                invalid_value=self.settings.primary_endpoint,
            )

        failures: List[Dict[str, Any]] = []

        for index, url in enumerate(urls):
            try:
                data = self._post_to_endpoint(url, body)
            except (ThresholdAbortError, OperationCancelledError):
                raise
            except TranslationServiceError as e:
                category = categorize_error(e)
                failures.append({"url": url, "message": e.message, "category": category})
                self.stats["endpoint_failures"] += 1
                logger.warning(f"Endpoint failed ({url}): {e.message} ({category.value})")
                if category in _UPSTREAM_CATEGORIES:
                    raise
                continue

            if index > 0 and self.settings.auto_endpoint_switch:
                self._promote(url, index)
            return data, url

        summary = "\n".join(
            f"{idx}) {f['url']} -> {f['message']} [{f['category'].value}]"
            for idx, f in enumerate(failures, start=1)
        )
        logger.error(f"All worker endpoints failed. Summary:\n{summary}")
        raise AllEndpointsFailedError(failures)

    def _post_to_endpoint(self, url: str, body: Dict[str, Any]) -> Any:
        """Talk to one endpoint, including its in-place retries."""
        current_body = dict(body)
        attempted_json_fallback = False
        attempted_rate_limit_retry = False

        while True:
            response = self._send(url, current_body)

            if 200 <= response.status_code < 300:
                try:
                    return response.json()
                except ValueError as e:
                    raise TranslationServiceError(
                        f"Invalid response from worker: {e}",
                        category=ErrorCategory.PARSE,
                        status=response.status_code,
                        url=url,
                    )

            error = self._error_from_response(url, response)
            category = error.category

            if category in (ErrorCategory.CAPACITY, ErrorCategory.MODEL_CAPACITY):
                logger.warning(f"Capacity error from {url} - {error.message}")
                raise error

            # The worker's own model verdict; heuristic MODEL matches still get
            # the 429/JSON handling below before failover stops on them
            if error.error_hint == ErrorCategory.MODEL.value:
                logger.error(
                    f'Model "{self.settings.model}" is not available. Stopping operation.'
                )
                raise error

            if response.status_code == 400 and (
                error.error_hint == ErrorCategory.JSON.value or category == ErrorCategory.JSON
            ):
                self.json_error_count += 1
                if self.json_error_count >= JSON_ERROR_THRESHOLD:
                    logger.error(
                        f"JSON errors reached threshold ({JSON_ERROR_THRESHOLD}). Stopping operation."
                    )
                    raise ThresholdAbortError(JSON_THRESHOLD, self.json_error_count)

                settings = current_body.get("settings") or {}
                if not attempted_json_fallback and settings.get("useJSONFormat") is not False:
                    attempted_json_fallback = True
                    self.stats["json_fallbacks"] += 1
                    logger.warning("JSON validation failed, retrying without JSON response format")
                    current_body = {**current_body, "settings": {**settings, "useJSONFormat": False}}
                    continue

            if response.status_code == 429:
                self.stats["rate_limited"] += 1
                self.rate_limit_error_count += 1
                if self.rate_limit_error_count > RATE_LIMIT_STRIKES_ALLOWED:
                    logger.error(
                        f"Rate limit errors reached threshold ({RATE_LIMIT_STRIKES_ALLOWED}). "
                        "Stopping operation."
                    )
                    raise ThresholdAbortError(RATE_LIMIT_THRESHOLD, self.rate_limit_error_count)

                if not attempted_rate_limit_retry:
                    attempted_rate_limit_retry = True
                    wait = parse_retry_after(response.text)
                    self._reduce_rate(wait)
                    self._sleep(wait)
                    continue

            raise error

    def _send(self, url: str, body: Dict[str, Any]) -> requests.Response:
        if self.cancel_token is not None and self.cancel_token.is_cancel_requested():
            raise OperationCancelledError("Cancellation requested before sending request")

        self.stats["http_requests"] += 1
        try:
            return self.session.post(
                url,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.settings.request_timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TranslationServiceError(
                f"Network timeout: {e}", category=ErrorCategory.NETWORK, url=url
            )
        except requests.exceptions.RequestException as e:
            raise TranslationServiceError(
                f"Network connection error: {e}", category=ErrorCategory.NETWORK, url=url
            )

    def _error_from_response(self, url: str, response: requests.Response) -> TranslationServiceError:
        """Turn a non-2xx response into a classified error."""
        text = response.text or ""
        try:
            envelope = json.loads(text)
        except ValueError:
            envelope = None

        if isinstance(envelope, dict):
            message = str(envelope.get("error") or f"HTTP {response.status_code}")
            hint = envelope.get("errorCategory")
        else:
            message = f"HTTP {response.status_code}: {text}"
            hint = None

        error = TranslationServiceError(
            message, status=response.status_code, url=url, error_hint=hint
        )
        if hint == ErrorCategory.MODEL.value:
            error.category = ErrorCategory.MODEL
        else:
            error.category = categorize_error(error)
        return error

    def _reduce_rate(self, wait: float) -> None:
        old_rpm = int(self.settings.requests_per_minute)
        new_rpm = max(1, math.floor(old_rpm * RPM_REDUCTION_FACTOR))
        if new_rpm < old_rpm:
            self.settings.requests_per_minute = new_rpm
            self._notify_settings_changed()
            logger.warning(
                f"Rate limit signal: reducing RPM {old_rpm} -> {new_rpm}; waiting ~{round(wait)}s"
            )
        else:
            logger.warning(f"Rate limit signal: waiting ~{round(wait)}s")

    def _promote(self, url: str, index: int) -> None:
        config = self.endpoint_config()
        config.promote(url, index)
        self.settings.primary_endpoint = config.primary
        self.settings.backup_endpoints = config.backups
        self.stats["promotions"] += 1
        self._notify_settings_changed()
        logger.warning(f"Failover: active => {config.primary}; backups => [{', '.join(config.backups)}]")

    def _notify_settings_changed(self) -> None:
        if self._on_settings_changed is None:
            return
        try:
            self._on_settings_changed(self.settings)
        except Exception as e:
            logger.warning(f"Could not persist settings: {e}")
