from __future__ import annotations

import random

import pytest

from rowstore.domain.cache.recency_cache import RecencyCache


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        RecencyCache(0)


def test_get_missing_returns_none():
    cache: RecencyCache[int, str] = RecencyCache(2)
    assert cache.get(1) is None
    assert cache.stats().misses == 1


def test_evicts_least_recently_inserted_when_never_accessed():
    cache: RecencyCache[str, int] = RecencyCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.size() == 2
    assert "a" not in cache
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_get_refreshes_recency():
    cache: RecencyCache[str, int] = RecencyCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1

    cache.set("c", 3)

    assert "b" not in cache
    assert cache.keys() == ["a", "c"]


def test_overwrite_counts_as_use_and_does_not_evict():
    cache: RecencyCache[str, int] = RecencyCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)

    assert cache.size() == 2
    assert cache.keys() == ["b", "a"]

    cache.set("c", 3)
    assert "b" not in cache
    assert cache.get("a") == 10


def test_contains_does_not_touch_recency():
    cache: RecencyCache[str, int] = RecencyCache(2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert "a" in cache

    cache.set("c", 3)
    assert "a" not in cache


def test_clear_drops_entries_and_counters():
    cache: RecencyCache[int, int] = RecencyCache(3)
    for i in range(3):
        cache.set(i, i)
    cache.get(0)
    cache.get(99)

    cache.clear()

    assert cache.size() == 0
    assert len(cache) == 0
    stats = cache.stats()
    assert (stats.hits, stats.misses) == (0, 0)
    assert stats.hit_rate == 0.0


def test_size_bound_and_most_recent_keys_survive_random_workload():
    capacity = 5
    cache: RecencyCache[int, int] = RecencyCache(capacity)
    rng = random.Random(1234)
    recent: list[int] = []

    for _ in range(500):
        key = rng.randrange(20)
        if rng.random() < 0.5:
            cache.set(key, key * 2)
            touched = True
        else:
            touched = cache.get(key) is not None
        if touched:
            if key in recent:
                recent.remove(key)
            recent.append(key)
        assert cache.size() <= capacity

    assert set(cache.keys()) == set(recent[-capacity:])


def test_hit_rate():
    cache: RecencyCache[int, str] = RecencyCache(2)
    cache.set(1, "x")
    cache.get(1)
    cache.get(1)
    cache.get(2)

    stats = cache.stats()
    assert stats.hits == 2
    assert stats.misses == 1
    assert stats.hit_rate == pytest.approx(2 / 3)
    assert stats.to_dict()["capacity"] == 2
