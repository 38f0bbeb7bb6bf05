"""
Base translation backend interface.
All translation services must inherit from TranslationBackend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from vocabtrans.core.models import TranslationResult


@dataclass
class TranslationRequest:
    """Request for one batch of words."""
    words: List[str]
    source_lang: str
    target_lang: str
    model: str = ""
    settings: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Wire body expected by the translation worker."""
        return {
            "words": list(self.words),
            "sourceLang": self.source_lang,
            "targetLang": self.target_lang,
            "model": self.model,
            "settings": dict(self.settings),
        }


@dataclass
class TranslationResponse:
    """Response from a translation backend."""
    translations: Dict[str, TranslationResult]
    backend: str
    endpoint: Optional[str] = None
    latency: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)


class TranslationBackend(ABC):
    """Abstract base class for translation backends."""

    def __init__(self, model: Optional[str] = None):
        self.model = model
        self.name = self.__class__.__name__

    @abstractmethod
    def translate_batch(self, request: TranslationRequest) -> TranslationResponse:
        """
        Translate one batch synchronously.

        Args:
            request: Words and languages to translate

        Returns:
            TranslationResponse keyed by normalized word
        """
        pass

    def reset_session_counters(self) -> None:
        """Clear per-run error counters; backends without any ignore this."""

    def is_available(self) -> bool:
        """Check if backend is available and configured."""
        return True

    def get_info(self) -> Dict:
        """Get backend information."""
        return {
            "name": self.name,
            "model": self.model,
            "available": self.is_available()
        }
