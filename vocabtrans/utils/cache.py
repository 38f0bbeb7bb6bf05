"""Translation result caching with TTL expiry."""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from vocabtrans.core.models import CacheEntry, TranslationResult, normalize_word

logger = logging.getLogger(__name__)

SWEEP_INTERVAL = 3600.0  # Seconds between background sweeps


class ResultCache:
    """Memo of prior translations keyed by lowercase word."""

    def __init__(
        self,
        ttl_hours: float = 24,
        store: Optional[Dict[str, CacheEntry]] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize cache.

        Args:
            ttl_hours: Entry lifetime in hours
            store: Existing entries (e.g. loaded from a state store)
            clock: Time source in epoch seconds
        """
        self.ttl_hours = ttl_hours
        self._store: Dict[str, CacheEntry] = dict(store or {})
        self._clock = clock
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[threading.Timer] = None
        self._sweeper_lock = threading.Lock()
        self._sweep_interval = SWEEP_INTERVAL
        self._on_sweep: Optional[Callable[[int], None]] = None

    @property
    def ttl(self) -> float:
        """TTL in seconds."""
        return self.ttl_hours * 3600

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, word: str) -> bool:
        return self.get(word) is not None

    def get(self, word: str) -> Optional[TranslationResult]:
        """
        Get a cached result.

        Returns:
            The result, or None when absent, expired (evicted on the spot)
            or the empty sentinel
        """
        key = normalize_word(word)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._clock() - entry.ts > self.ttl:
                del self._store[key]
                self._misses += 1
                return None

            if entry.data.is_empty():
                self._misses += 1
                return None

            self._hits += 1
            return entry.data

    def set(self, word: str, result: TranslationResult) -> None:
        key = normalize_word(word)
        with self._lock:
            self._store[key] = CacheEntry(ts=self._clock(), data=result)

    def sweep(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._store.items() if now - entry.ts > self.ttl]
            for key in expired:
                del self._store[key]
        if expired:
            logger.info(f"Cache cleanup: removed {len(expired)} expired item(s)")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def start_sweeper(
        self,
        interval: float = SWEEP_INTERVAL,
        on_sweep: Optional[Callable[[int], None]] = None
    ) -> None:
        """
        Sweep periodically on a daemon timer thread.

        Args:
            interval: Seconds between sweeps
            on_sweep: Called with the removed count when a sweep removed
                anything (used to persist the store)
        """
        self.stop_sweeper()
        self._sweep_interval = interval
        self._on_sweep = on_sweep
        with self._sweeper_lock:
            self._schedule_sweep()

    def stop_sweeper(self) -> None:
        with self._sweeper_lock:
            if self._sweeper is not None:
                self._sweeper.cancel()
                self._sweeper = None

    def _schedule_sweep(self) -> None:
        # Caller holds _sweeper_lock
        self._sweeper = threading.Timer(self._sweep_interval, self._run_sweep)
        self._sweeper.daemon = True
        self._sweeper.start()

    def _run_sweep(self) -> None:
        try:
            removed = self.sweep()
            if removed and self._on_sweep is not None:
                self._on_sweep(removed)
        except Exception as e:
            logger.warning(f"Cache sweep failed: {e}")
        finally:
            with self._sweeper_lock:
                if self._sweeper is not None:
                    self._schedule_sweep()

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serializable snapshot of the store."""
        with self._lock:
            return {key: entry.to_dict() for key, entry in self._store.items()}

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Dict[str, Any]]],
        ttl_hours: float = 24,
        clock: Callable[[], float] = time.time
    ) -> "ResultCache":
        store = {}
        for key, raw in (data or {}).items():
            if isinstance(raw, dict):
                store[normalize_word(key)] = CacheEntry.from_dict(raw)
        return cls(ttl_hours=ttl_hours, store=store, clock=clock)

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        hit_rate = self._hits / total if total > 0 else 0
        return {
            "size": len(self),
            "ttl_hours": self.ttl_hours,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{hit_rate:.1%}"
        }
