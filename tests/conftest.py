"""Pytest configuration and fixtures."""

import json
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest


class FakeClock:
    """Manual time source; ``sleep`` advances it and records the duration."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(status: int = 200, body=None):
    """Mock ``requests.Response`` with a JSON (dict) or raw text body."""
    response = Mock()
    response.status_code = status
    if isinstance(body, (dict, list)):
        response.text = json.dumps(body)
        response.json.return_value = body
    else:
        response.text = body or ""
        response.json.side_effect = ValueError("No JSON object could be decoded")
    return response


def valid_entry(word: str) -> dict:
    """Wire-format translation that passes result validation."""
    return {
        "translation": f"{word}-tr",
        "definition": f"A complete definition of {word}",
        "exampleSource": f"I see the {word}.",
        "exampleTarget": f"Ich sehe {word}.",
    }


def success_body(words) -> dict:
    return {"success": True, "translations": {w: valid_entry(w) for w in words}}


@pytest.fixture
def clock():
    """Fake clock shared by all time-dependent components of a test."""
    return FakeClock()


@pytest.fixture
def settings():
    """Settings with endpoints configured and adaptive batching off."""
    from vocabtrans.core.settings import TranslatorSettings
    return TranslatorSettings(
        model="test-model",
        primary_endpoint="https://a.example.com/translate",
        backup_endpoints=[
            "https://b.example.com/translate",
            "https://c.example.com/translate",
        ],
        batch_size=2,
        smart_auto_mode=False,
        enable_adaptive_batching=False,
        requests_per_minute=30,
    )


@pytest.fixture
def valid_result():
    """A translation result that passes validation."""
    from vocabtrans.core.models import TranslationResult
    return TranslationResult.from_dict(valid_entry("house"))


@pytest.fixture
def response():
    """Factory for mock HTTP responses."""
    return make_response


@pytest.fixture
def worker_ok():
    """Factory for successful worker envelopes."""
    return success_body


@pytest.fixture
def entry():
    """Factory for valid wire-format entries."""
    return valid_entry
