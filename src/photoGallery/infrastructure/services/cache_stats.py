"""Lookup and eviction counters for the content cache partitions.

:class:`ContentCache` reports every ``get`` as a hit or a miss and every
LRU eviction under the name of the partition it touched (``"thumbnail"``
or ``"fullsize"``).  Readers get frozen :class:`CacheStats` copies.
"""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Optional

_HITS = "hits"
_MISSES = "misses"
_EVICTIONS = "evictions"


@dataclass(frozen=True)
class CacheStats:
    """Counts for one partition at the time they were read."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def total(self) -> int:
        """Number of lookups; evictions are not lookups."""
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        lookups = self.total
        return self.hits / lookups if lookups else 0.0

    @classmethod
    def from_counter(cls, counter: Optional[Counter]) -> "CacheStats":
        if not counter:
            return cls()
        return cls(hits=counter[_HITS], misses=counter[_MISSES], evictions=counter[_EVICTIONS])


class CacheStatsCollector:
    """Per-partition counters shared between threads.

    A partition appears in :meth:`all` once anything was recorded for it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._partitions: Dict[str, Counter] = {}

    def record_hit(self, partition: str) -> None:
        self._bump(partition, _HITS, 1)

    def record_miss(self, partition: str) -> None:
        self._bump(partition, _MISSES, 1)

    def record_eviction(self, partition: str, count: int = 1) -> None:
        if count > 0:
            self._bump(partition, _EVICTIONS, count)

    def get(self, partition: str) -> CacheStats:
        with self._lock:
            return CacheStats.from_counter(self._partitions.get(partition))

    def all(self) -> Dict[str, CacheStats]:
        """Snapshots keyed by partition name, in name order."""
        with self._lock:
            return {name: CacheStats.from_counter(self._partitions[name]) for name in sorted(self._partitions)}

    def reset(self, partition: Optional[str] = None) -> None:
        """Forget the counts of *partition*, or of every partition."""
        with self._lock:
            if partition is None:
                self._partitions.clear()
            else:
                self._partitions.pop(partition, None)

    def _bump(self, partition: str, field: str, amount: int) -> None:
        with self._lock:
            self._partitions.setdefault(partition, Counter())[field] += amount
