"""
Byte-bounded LRU store for upstream responses.

Entries are keyed by a logical request fingerprint and hold the upstream
validator (ETag) next to the decoded payload. The store never expires
entries on its own; they leave only when evicted under capacity pressure
or overwritten by a newer fetch.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from cachetools import LRUCache

from shared.logging import get_logger
from .sizing import Sizer, estimate_size, format_bytes

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


WEAK_VALIDATOR_PREFIX = "W/"


def normalize_validator(validator: str) -> str:
    """Strip the weak-validator marker so the tag can be echoed back as-is."""
    if validator.startswith(WEAK_VALIDATOR_PREFIX):
        return validator[len(WEAK_VALIDATOR_PREFIX):]
    return validator


@dataclass(frozen=True)
class CacheEntry:
    """A cached upstream response."""

    key: str
    validator: str
    payload: Any = field(compare=False)
    size: int


@dataclass(frozen=True)
class CacheUsage:
    """Byte accounting of the store, raw and human-readable."""

    limit: int
    used: int

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    @property
    def raw(self) -> Dict[str, int]:
        return {"limit": self.limit, "used": self.used, "remaining": self.remaining}

    @property
    def human(self) -> Dict[str, str]:
        return {name: format_bytes(value) for name, value in self.raw.items()}

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {"raw": self.raw, "human": self.human}


class _EntryCache(LRUCache):
    """LRUCache that weighs entries by their precomputed size and reports evictions."""

    def __init__(self, maxsize: int, on_evict: Callable[[CacheEntry], None]):
        super().__init__(maxsize=maxsize, getsizeof=lambda entry: entry.size)
        self._on_evict = on_evict

    def popitem(self):
        key, entry = super().popitem()
        self._on_evict(entry)
        return key, entry


class CacheStore:
    """Thread-safe LRU store bounded by the total byte size of its payloads."""

    def __init__(
        self,
        max_size_bytes: int,
        *,
        sizer: Sizer = estimate_size,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be positive")

        self.max_size_bytes = max_size_bytes
        self.sizer = sizer
        self.metrics = metrics
        self.logger = get_logger("proxy.cache_store")
        self._lock = threading.Lock()
        self._entries = _EntryCache(max_size_bytes, self._record_eviction)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` and mark it most recently used."""
        with self._lock:
            entry = self._entries.get(key)

        self._record_lookup("hit" if entry is not None else "miss")
        return entry

    def put(self, key: str, validator: str, payload: Any) -> bool:
        """Insert or replace the entry for ``key``.

        Least recently used entries are evicted until the new entry fits.
        A payload larger than the whole budget is not stored, and any
        previous entry for ``key`` is removed; ``False`` is returned in
        that case.
        """
        size = self.sizer(payload)
        entry = CacheEntry(
            key=key,
            validator=normalize_validator(validator),
            payload=payload,
            size=size,
        )

        with self._lock:
            # Drop the old entry first so its bytes do not force extra evictions
            self._entries.pop(key, None)
            if size > self.max_size_bytes:
                stored = False
            else:
                self._entries[key] = entry
                stored = True
            used = self._entries.currsize

        if not stored:
            self.logger.warning(
                "Payload exceeds cache budget, entry dropped",
                key=key,
                size=size,
                limit=self.max_size_bytes
            )
        self._record_usage(used)
        return stored

    def usage(self) -> CacheUsage:
        """Current byte usage of the store."""
        with self._lock:
            return CacheUsage(limit=self.max_size_bytes, used=self._entries.currsize)

    def clear(self) -> None:
        # A fresh cache, so clearing is not reported as evictions
        with self._lock:
            self._entries = _EntryCache(self.max_size_bytes, self._record_eviction)
        self._record_usage(0)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _record_eviction(self, entry: CacheEntry) -> None:
        # Runs under self._lock, from inside _EntryCache.__setitem__
        self.logger.debug("Evicted cache entry", key=entry.key, size=entry.size)
        if self.metrics:
            self.metrics.increment_counter("cache_evictions_total")

    def _record_lookup(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_lookups_total", result=result)

    def _record_usage(self, used: int) -> None:
        if self.metrics:
            self.metrics.set_gauge("cache_bytes_used", used)
