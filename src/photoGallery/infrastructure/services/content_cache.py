"""Two-partition LRU cache for image bytes."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from ...config import FULL_IMAGE_CACHE_COST_LIMIT, FULL_IMAGE_CACHE_LIMIT, THUMBNAIL_CACHE_LIMIT
from ...domain.models import ImageVariant
from ...utils.hashutils import variant_of_key
from .cache_stats import CacheStatsCollector

LOGGER = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    blob: bytes
    cost: int


class LruPartition:
    """LRU map bounded by entry count and, optionally, by total cost.

    A ``capacity`` of zero or less disables the partition: every ``put`` is
    dropped and every ``get`` misses.  A ``cost_limit`` of ``None`` or zero
    or less means the partition is bounded by count only.

    Not thread-safe on its own; :class:`ContentCache` serialises access.
    """

    def __init__(self, capacity: int, cost_limit: Optional[int] = None) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._capacity = capacity
        self._cost_limit = cost_limit
        self._total_cost = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cost_limit(self) -> Optional[int]:
        return self._cost_limit if self._cost_bounded else None

    @property
    def enabled(self) -> bool:
        return self._capacity > 0

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def total_cost(self) -> int:
        return self._total_cost

    @property
    def _cost_bounded(self) -> bool:
        return self._cost_limit is not None and self._cost_limit > 0

    def keys(self) -> List[str]:
        """Keys ordered from least to most recently used."""
        return list(self._entries)

    def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry.blob

    def peek(self, key: str) -> bool:
        return key in self._entries

    def put(self, key: str, blob: bytes, cost: int) -> int:
        """Insert *blob*; return the number of entries evicted to make room."""
        if not self.enabled:
            return 0
        self._discard(key)
        if self._cost_bounded and cost > self._cost_limit:
            # Storing it would flush the whole partition and still not fit.
            LOGGER.debug("Entry %s (cost %d) exceeds cost limit %d; not cached", key, cost, self._cost_limit)
            return 0
        self._entries[key] = CacheEntry(key=key, blob=blob, cost=cost)
        self._total_cost += cost
        return self._trim()

    def set_limits(self, capacity: Optional[int] = None, cost_limit: Optional[int] = None) -> int:
        if capacity is not None:
            self._capacity = capacity
        if cost_limit is not None:
            self._cost_limit = cost_limit
        if not self.enabled:
            evicted = len(self._entries)
            self.clear()
            return evicted
        return self._trim()

    def invalidate(self, key: str) -> bool:
        return self._discard(key)

    def clear(self) -> None:
        self._entries.clear()
        self._total_cost = 0

    def _discard(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._total_cost -= entry.cost
        return True

    def _trim(self) -> int:
        evicted = 0
        while self._entries and (
            len(self._entries) > self._capacity
            or (self._cost_bounded and self._total_cost > self._cost_limit)
        ):
            _, entry = self._entries.popitem(last=False)
            self._total_cost -= entry.cost
            evicted += 1
        return evicted


class ContentCache:
    """Bounded key → blob cache with a thumbnail and a full-image partition.

    The partition is chosen from the key (see
    :func:`photoGallery.utils.hashutils.make_cache_key`), so callers only
    ever deal in keys.  Every operation holds one lock, which makes an insert
    and the evictions it causes a single step: ``get`` never sees a
    partition over its limit.
    """

    def __init__(
        self,
        thumbnail_capacity: int = THUMBNAIL_CACHE_LIMIT,
        full_image_capacity: int = FULL_IMAGE_CACHE_LIMIT,
        *,
        thumbnail_cost_limit: Optional[int] = None,
        full_image_cost_limit: Optional[int] = FULL_IMAGE_CACHE_COST_LIMIT,
        stats: Optional[CacheStatsCollector] = None,
    ) -> None:
        self._partitions: Dict[ImageVariant, LruPartition] = {
            ImageVariant.THUMBNAIL: LruPartition(thumbnail_capacity, thumbnail_cost_limit),
            ImageVariant.FULLSIZE: LruPartition(full_image_capacity, full_image_cost_limit),
        }
        self._stats = stats
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[bytes]:
        """Return the blob for *key* and mark it most recently used."""
        variant = variant_of_key(key)
        with self._lock:
            blob = self._partitions[variant].get(key)
        if self._stats:
            if blob is None:
                self._stats.record_miss(variant.value)
            else:
                self._stats.record_hit(variant.value)
        return blob

    def put(self, key: str, blob: bytes, cost: Optional[int] = None) -> None:
        """Store *blob* under *key*; ``cost`` defaults to ``len(blob)``."""
        variant = variant_of_key(key)
        if cost is None:
            cost = len(blob)
        with self._lock:
            evicted = self._partitions[variant].put(key, blob, cost)
        if evicted:
            LOGGER.debug("Evicted %d %s entries", evicted, variant.value)
            if self._stats:
                self._stats.record_eviction(variant.value, evicted)

    def contains(self, key: str) -> bool:
        """Membership test that does not refresh recency."""
        variant = variant_of_key(key)
        with self._lock:
            return self._partitions[variant].peek(key)

    def invalidate(self, key: str) -> None:
        variant = variant_of_key(key)
        with self._lock:
            self._partitions[variant].invalidate(key)

    def configure(
        self,
        thumbnail_capacity: Optional[int] = None,
        full_image_capacity: Optional[int] = None,
        *,
        thumbnail_cost_limit: Optional[int] = None,
        full_image_cost_limit: Optional[int] = None,
    ) -> None:
        """Change limits live.

        ``None`` leaves a limit unchanged.  A cost limit of ``0`` removes the
        cost bound.  Lowering a limit below the current occupancy evicts
        least-recently-used entries straight away.
        """

        with self._lock:
            evicted = {
                ImageVariant.THUMBNAIL: self._partitions[ImageVariant.THUMBNAIL].set_limits(
                    thumbnail_capacity, thumbnail_cost_limit
                ),
                ImageVariant.FULLSIZE: self._partitions[ImageVariant.FULLSIZE].set_limits(
                    full_image_capacity, full_image_cost_limit
                ),
            }
        for variant, count in evicted.items():
            if count:
                LOGGER.debug("Reconfigure evicted %d %s entries", count, variant.value)
                if self._stats:
                    self._stats.record_eviction(variant.value, count)

    def clear(self, partition: Optional[ImageVariant] = None) -> None:
        with self._lock:
            if partition is None:
                for part in self._partitions.values():
                    part.clear()
            else:
                self._partitions[partition].clear()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def size(self, partition: ImageVariant) -> int:
        with self._lock:
            return self._partitions[partition].size

    def total_cost(self, partition: ImageVariant) -> int:
        with self._lock:
            return self._partitions[partition].total_cost

    def capacity(self, partition: ImageVariant) -> int:
        with self._lock:
            return self._partitions[partition].capacity

    def cost_limit(self, partition: ImageVariant) -> Optional[int]:
        with self._lock:
            return self._partitions[partition].cost_limit

    def keys(self, partition: ImageVariant) -> List[str]:
        """Keys of *partition* from least to most recently used."""
        with self._lock:
            return self._partitions[partition].keys()
