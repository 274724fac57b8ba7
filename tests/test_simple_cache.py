"""Unit tests for the in-memory SimpleTTLCache backing the holiday lookup."""

import threading

import pytest

from app.utils import simple_cache
from app.utils.simple_cache import SimpleTTLCache, build_holiday_cache_key


class FakeTime:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


def test_holiday_cache_keys() -> None:
    assert build_holiday_cache_key(2024) == "2024"
    assert build_holiday_cache_key(2024, 5) == "2024-05"
    assert build_holiday_cache_key(2024, 12) == "2024-12"


def test_set_and_get_updates_hit_miss_counters() -> None:
    cache: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(ttl_seconds=10)

    assert cache.get("2024-05") is None

    holidays = {"2024-05-05": "Children's Day"}
    cache.set("2024-05", holidays)
    assert cache.get("2024-05") == holidays

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1


def test_empty_result_is_cached() -> None:
    cache: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(ttl_seconds=10)
    cache.set("2024-06", {})
    assert cache.get("2024-06") == {}


def test_entry_expires_after_a_day(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_time = FakeTime()
    monkeypatch.setattr(simple_cache, "time", fake_time)

    cache: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(ttl_seconds=86_400)
    cache.set("2024", {"2024-01-01": "New Year"})

    fake_time.advance(86_399)
    assert cache.get("2024") is not None

    fake_time.advance(2)
    assert cache.get("2024") is None
    assert cache.stats()["evictions"] == 1


def test_lru_eviction_removes_least_recently_used() -> None:
    cache: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(ttl_seconds=100, max_entries=2)
    cache.set("2024-01", {"2024-01-01": "New Year"})
    cache.set("2024-02", {})

    # touch January so February becomes least recently used
    assert cache.get("2024-01") is not None

    cache.set("2024-03", {"2024-03-01": "Independence Movement Day"})

    assert cache.get("2024-01") is not None
    assert cache.get("2024-03") is not None
    assert cache.get("2024-02") is None


def test_clear_resets_state() -> None:
    cache: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(ttl_seconds=10)
    cache.set("a", {})
    cache.get("a")

    cache.clear()

    assert cache.stats() == {
        "ttl_seconds": 10,
        "max_entries": 1024,
        "entries": 0,
        "hits": 0,
        "misses": 0,
        "evictions": 0,
    }


def test_thread_safety_under_concurrent_sets() -> None:
    cache: SimpleTTLCache[dict[str, str]] = SimpleTTLCache(ttl_seconds=30, max_entries=None)

    threads = [
        threading.Thread(target=cache.set, args=(build_holiday_cache_key(2000 + i), {})) for i in range(50)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.stats()["entries"] == 50
