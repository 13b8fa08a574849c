"""
In-process result cache for aggregation outputs.

Bounded LRU keyed by a content fingerprint (record identifiers plus the
resolved time-window bounds), never by object identity. Access is guarded
by a single lock, and concurrent requests for the same fingerprint wait
for the first computation instead of repeating it.
"""

from __future__ import annotations

import hashlib
import json
import threading
from collections import OrderedDict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from .logging_config import get_logger
from .window import TimeWindow

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    evictions: int
    size: int
    max_entries: int


class ResultCache:
    """
    LRU cache of analytics results.

    Features:
    - Fingerprints derived from record identifiers and window bounds
    - Least-recently-used eviction past ``max_entries``
    - At most one computation in flight per fingerprint (best effort)

    A cache with ``max_entries=0`` or ``enabled=False`` always computes.
    """

    def __init__(self, max_entries: int = 32, enabled: bool = True):
        if max_entries < 0:
            raise ValueError("max_entries must be non-negative")
        self.max_entries = max_entries
        self.enabled = enabled and max_entries > 0

        self._entries: OrderedDict[str, Any] = OrderedDict()
        self._inflight: dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

        if self.enabled:
            logger.debug(f"Result cache initialized (max_entries={max_entries})")
        else:
            logger.debug("Result cache disabled")

    @staticmethod
    def fingerprint(
        operation: str,
        identifiers: Iterable[str],
        window: Optional[TimeWindow] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Build a stable cache key.

        Args:
            operation: Analysis kind, e.g. "heatmap"
            identifiers: Identifiers of the input records (commit SHAs, PR
                numbers, ...), in the order they were fetched
            window: Resolved time window; its bounds are part of the key
            extra: Further parameters that change the result (JSON-serializable)

        Returns:
            SHA-256 hex digest
        """
        digest = hashlib.sha256()
        digest.update(operation.encode())
        digest.update(b"\0")
        digest.update((window.bounds_key() if window is not None else "-").encode())
        digest.update(b"\0")
        if extra:
            digest.update(json.dumps(extra, sort_keys=True, default=str).encode())
        digest.update(b"\0")
        for identifier in identifiers:
            digest.update(str(identifier).encode())
            digest.update(b"\n")
        return digest.hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value (marking it recently used) or None."""
        if not self.enabled:
            return None
        with self._lock:
            if key not in self._entries:
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return self._entries[key]

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        """
        Return the cached value for ``key``, computing and storing it on a miss.

        If another thread is already computing ``key``, wait for it and reuse
        its result. If that computation fails, this call computes on its own.
        Exceptions from ``compute`` propagate and nothing is stored.
        """
        if not self.enabled:
            with self._lock:
                self._misses += 1
            return compute()

        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self._hits += 1
                logger.debug(f"Cache hit: {key[:16]}...")
                return self._entries[key]
            pending = self._inflight.get(key)
            if pending is None:
                pending = threading.Event()
                self._inflight[key] = pending
                owner = True
            else:
                owner = False

        if not owner:
            pending.wait()
            with self._lock:
                if key in self._entries:
                    self._entries.move_to_end(key)
                    self._hits += 1
                    return self._entries[key]
                self._misses += 1
            return compute()

        try:
            value = compute()
            with self._lock:
                self._misses += 1
                self._store(key, value)
            logger.debug(f"Cache miss: {key[:16]}... (computed)")
            return value
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            pending.set()

    def _store(self, key: str, value: Any) -> None:
        # Caller holds the lock
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Cache evict: {evicted[:16]}...")

    def clear(self) -> None:
        """Drop every entry. Statistics are kept."""
        with self._lock:
            self._entries.clear()
        logger.info("Result cache cleared")

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._entries),
                max_entries=self.max_entries,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
