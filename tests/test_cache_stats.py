"""Tests for CacheStatsCollector: hit/miss/eviction tracking."""

from __future__ import annotations

from collections import Counter

import pytest

from photoGallery.infrastructure.services.cache_stats import CacheStats, CacheStatsCollector


class TestCacheStats:
    def test_empty(self):
        s = CacheStats()
        assert s.total == 0
        assert s.hit_rate == 0.0

    def test_mixed(self):
        s = CacheStats(hits=7, misses=3)
        assert s.hit_rate == pytest.approx(0.7)

    def test_evictions_not_counted_as_requests(self):
        s = CacheStats(hits=1, misses=1, evictions=5)
        assert s.total == 2

    def test_from_partial_counter(self):
        s = CacheStats.from_counter(Counter(misses=2))
        assert (s.hits, s.misses, s.evictions) == (0, 2, 0)
        assert CacheStats.from_counter(None) == CacheStats()


class TestCacheStatsCollector:
    def test_partitions_tracked_separately(self):
        c = CacheStatsCollector()
        c.record_hit("thumbnail")
        c.record_hit("thumbnail")
        c.record_miss("fullsize")

        assert c.get("thumbnail").hits == 2
        assert c.get("fullsize").misses == 1
        assert c.get("fullsize").hits == 0

    def test_unknown_partition(self):
        c = CacheStatsCollector()
        s = c.get("nonexistent")
        assert s.total == 0
        assert s.evictions == 0

    def test_record_eviction_accumulates(self):
        c = CacheStatsCollector()
        c.record_eviction("thumbnail")
        c.record_eviction("thumbnail", 3)
        assert c.get("thumbnail").evictions == 4

    def test_record_eviction_ignores_non_positive(self):
        c = CacheStatsCollector()
        c.record_eviction("thumbnail", 0)
        assert "thumbnail" not in c.all()

    def test_all_is_sorted_by_name(self):
        c = CacheStatsCollector()
        c.record_miss("thumbnail")
        c.record_eviction("fullsize", 2)
        assert list(c.all()) == ["fullsize", "thumbnail"]

    def test_reset_single(self):
        c = CacheStatsCollector()
        c.record_hit("thumbnail")
        c.record_hit("fullsize")
        c.reset("thumbnail")
        assert c.get("thumbnail").hits == 0
        assert c.get("fullsize").hits == 1

    def test_reset_all(self):
        c = CacheStatsCollector()
        c.record_hit("thumbnail")
        c.record_eviction("fullsize")
        c.reset()
        assert c.all() == {}
