"""Runtime settings shared by the batch engine and the translation backend."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

TRANSLATION_QUALITIES = ["standard", "professional", "comprehensive"]
LEARNER_LEVELS = ["A1", "A2", "B1", "B2", "C1", "C2"]
CONSENSUS_STRATEGIES = ["best-score", "majority", "merge"]
LOG_LEVELS = ["minimal", "standard", "detailed"]

HIGH_LIMIT_RPM = 60
DEFAULT_RPM_CAP = 30


@dataclass
class TranslatorSettings:
    """Complete configuration for batch translation."""

    # Model and endpoints
    model: str = ""
    primary_endpoint: str = ""
    backup_endpoints: List[str] = field(default_factory=list)
    auto_endpoint_switch: bool = True  # Promote a backup that succeeded
    high_limit_models: List[str] = field(default_factory=list)  # Get the 60 RPM ceiling
    request_timeout: float = 60.0  # Seconds per HTTP request

    # Batching
    batch_size: int = 8  # Fixed size when adaptive batching is off
    smart_auto_mode: bool = True
    enable_adaptive_batching: bool = True
    max_non_model_failures: int = 3  # Consecutive skipped batches before abort
    low_resource_mode: bool = False  # Longer pause between batches

    # Rate limiting
    enable_rate_limiting: bool = True
    requests_per_minute: int = 15  # Lowered automatically on HTTP 429

    # Cache
    cache_ttl_hours: float = 24

    # Translation knobs forwarded to the service
    use_json_format: bool = True
    translation_quality: str = "professional"
    learner_level: str = "B1"
    meanings_count: int = 1
    limit_definition_length: bool = False
    simplify_examples_for_beginners: bool = True
    add_nuance_for_advanced: bool = True
    quality_score_threshold: float = 0.7
    enable_consensus: bool = False
    consensus_trigger_threshold: float = 0.75
    consensus_max_models: int = 2
    consensus_budget_per_run: int = 8
    consensus_strategy: str = "best-score"

    # Output
    log_level: str = "detailed"

    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []

        if self.batch_size < 1:
            issues.append("batch_size must be at least 1")

        if self.requests_per_minute < 1:
            issues.append("requests_per_minute must be at least 1")

        if self.cache_ttl_hours <= 0:
            issues.append("cache_ttl_hours must be positive")

        if self.max_non_model_failures < 1:
            issues.append("max_non_model_failures must be at least 1")

        if self.translation_quality not in TRANSLATION_QUALITIES:
            issues.append(f"translation_quality must be one of {TRANSLATION_QUALITIES}")

        if self.learner_level not in LEARNER_LEVELS:
            issues.append(f"learner_level must be one of {LEARNER_LEVELS}")

        if self.consensus_strategy not in CONSENSUS_STRATEGIES:
            issues.append(f"consensus_strategy must be one of {CONSENSUS_STRATEGIES}")

        if self.log_level not in LOG_LEVELS:
            issues.append(f"log_level must be one of {LOG_LEVELS}")

        if not 0 <= self.quality_score_threshold <= 1:
            issues.append("quality_score_threshold must be between 0 and 1")

        return issues

    @property
    def adaptive_batching_active(self) -> bool:
        return self.smart_auto_mode and self.enable_adaptive_batching

    def model_rpm_cap(self) -> int:
        """Upstream ceiling for the selected model."""
        if self.model and self.model in self.high_limit_models:
            return HIGH_LIMIT_RPM
        return DEFAULT_RPM_CAP

    def effective_rpm(self) -> int:
        """Configured requests-per-minute bounded by the model ceiling."""
        return max(1, min(int(self.requests_per_minute), self.model_rpm_cap()))

    def request_settings(self) -> Dict[str, Any]:
        """The ``settings`` object sent with every translation request."""
        return {
            "translationQuality": self.translation_quality,
            "learnerLevel": self.learner_level,
            "smartAutoMode": self.smart_auto_mode,
            "meaningsCount": self.meanings_count,
            "useJSONFormat": self.use_json_format,
            "limitDefinitionLength": self.limit_definition_length,
            "simplifyExamplesForBeginners": self.simplify_examples_for_beginners,
            "addNuanceForAdvanced": self.add_nuance_for_advanced,
            "qualityScoreThreshold": self.quality_score_threshold,
            "enableConsensus": self.enable_consensus,
            "consensusTriggerThreshold": self.consensus_trigger_threshold,
            "consensusMaxModels": self.consensus_max_models,
            "consensusBudgetPerRun": self.consensus_budget_per_run,
            "consensusStrategy": self.consensus_strategy,
        }
