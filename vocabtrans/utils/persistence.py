"""
State persistence for the cache store and usage statistics.

The persisted document is ``{"cacheStore": {...}, "usageStats": {...}}``.
Stores raise ``PersistenceError``; the orchestrator logs those and keeps
translating.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import diskcache

from vocabtrans.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

CACHE_STORE_KEY = "cacheStore"
USAGE_STATS_KEY = "usageStats"


def empty_state() -> Dict[str, Any]:
    return {CACHE_STORE_KEY: {}, USAGE_STATS_KEY: {}}


class StateStore:
    """Interface for loading and saving run state."""

    def load(self) -> Dict[str, Any]:
        raise NotImplementedError

    def save(self, state: Dict[str, Any]) -> None:
        raise NotImplementedError


class MemoryStateStore(StateStore):
    """Keeps state in memory; useful for one-off runs and tests."""

    def __init__(self, state: Dict[str, Any] = None):
        self.state = state or empty_state()
        self.save_count = 0

    def load(self) -> Dict[str, Any]:
        return json.loads(json.dumps(self.state))

    def save(self, state: Dict[str, Any]) -> None:
        self.state = json.loads(json.dumps(state))
        self.save_count += 1


class JsonStateStore(StateStore):
    """State in a single JSON file, replaced atomically on save."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return empty_state()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(
                f"Failed to load state from {self.path}: {e}",
                store_type="json",
                operation="load"
            )
        state = empty_state()
        if isinstance(data, dict):
            state.update({k: v for k, v in data.items() if isinstance(v, dict)})
        return state

    def save(self, state: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=".state-", suffix=".json"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(
                f"Failed to save state to {self.path}: {e}",
                store_type="json",
                operation="save"
            )
        logger.debug(f"State saved to {self.path}")


class DiskStateStore(StateStore):
    """State in a diskcache directory, one key per document section."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._cache = diskcache.Cache(str(self.directory))
        except Exception as e:
            raise PersistenceError(
                f"Failed to open state directory {self.directory}: {e}",
                store_type="disk",
                operation="init"
            )

    def load(self) -> Dict[str, Any]:
        try:
            return {
                CACHE_STORE_KEY: self._cache.get(CACHE_STORE_KEY, {}),
                USAGE_STATS_KEY: self._cache.get(USAGE_STATS_KEY, {}),
            }
        except Exception as e:
            raise PersistenceError(
                f"Failed to load state: {e}", store_type="disk", operation="load"
            )

    def save(self, state: Dict[str, Any]) -> None:
        try:
            with self._cache.transact():
                self._cache.set(CACHE_STORE_KEY, state.get(CACHE_STORE_KEY, {}))
                self._cache.set(USAGE_STATS_KEY, state.get(USAGE_STATS_KEY, {}))
        except Exception as e:
            raise PersistenceError(
                f"Failed to save state: {e}", store_type="disk", operation="save"
            )

    def close(self) -> None:
        self._cache.close()
