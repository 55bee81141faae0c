"""Unit tests for webdigest.cache."""

from __future__ import annotations

import json

from webdigest import keys
from webdigest.cache import CACHE_LIMIT, CACHE_TRIM_TO, DigestCache, cache_key
from webdigest.models.content import DigestMode
from webdigest.storage import MemoryStorage


def _fixed_clock(value: int = 1_000):
    return lambda: value


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


class TestLookup:
    def test_key_includes_mode(self) -> None:
        assert cache_key("hello", DigestMode.LARGE) == "large:hello"
        assert cache_key("hello", DigestMode.SMALL) == "small:hello"

    def test_set_then_get(self, cache: DigestCache) -> None:
        cache.set("article text", DigestMode.LARGE, "digest")
        entry = cache.get("article text", DigestMode.LARGE)
        assert entry is not None
        assert entry.result == "digest"
        assert entry.timestamp > 0

    def test_modes_are_independent(self, cache: DigestCache) -> None:
        cache.set("article text", DigestMode.LARGE, "long digest")
        assert cache.get("article text", DigestMode.SMALL) is None

    def test_text_is_matched_exactly(self, cache: DigestCache) -> None:
        cache.set("article text", DigestMode.LARGE, "digest")
        assert cache.get("article text ", DigestMode.LARGE) is None

    def test_rewrite_replaces_entry(self, cache: DigestCache) -> None:
        cache.set("t", DigestMode.SMALL, "first")
        cache.set("t", DigestMode.SMALL, "second")
        assert len(cache) == 1
        entry = cache.get("t", DigestMode.SMALL)
        assert entry is not None
        assert entry.result == "second"


# ---------------------------------------------------------------------------
# Eviction
# ---------------------------------------------------------------------------


class TestEviction:
    def test_limit_not_exceeded_keeps_everything(self, cache: DigestCache) -> None:
        for i in range(CACHE_LIMIT):
            cache.set(f"text {i}", DigestMode.LARGE, f"digest {i}")
        assert len(cache) == CACHE_LIMIT

    def test_overflow_trims_to_most_recent(self, cache: DigestCache) -> None:
        for i in range(CACHE_LIMIT + 1):
            cache.set(f"text {i}", DigestMode.LARGE, f"digest {i}")
        assert len(cache) == CACHE_TRIM_TO
        # The 30 newest survive: indices 21..50.
        assert cache.get("text 20", DigestMode.LARGE) is None
        assert cache.get("text 21", DigestMode.LARGE) is not None
        assert cache.get(f"text {CACHE_LIMIT}", DigestMode.LARGE) is not None

    def test_reads_do_not_refresh(self, cache: DigestCache) -> None:
        for i in range(CACHE_LIMIT):
            cache.set(f"text {i}", DigestMode.LARGE, f"digest {i}")
        assert cache.get("text 0", DigestMode.LARGE) is not None
        cache.set("overflow", DigestMode.LARGE, "x")
        assert cache.get("text 0", DigestMode.LARGE) is None

    def test_equal_timestamps_keep_later_writes(self) -> None:
        cache = DigestCache(MemoryStorage(), limit=3, trim_to=2, clock=_fixed_clock())
        for name in ("a", "b", "c", "d"):
            cache.set(name, DigestMode.SMALL, name.upper())
        assert len(cache) == 2
        assert cache.get("c", DigestMode.SMALL) is not None
        assert cache.get("d", DigestMode.SMALL) is not None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestPersistence:
    async def test_set_marks_dirty_without_writing(self, cache: DigestCache) -> None:
        cache.set("t", DigestMode.LARGE, "d")
        assert cache.dirty is True
        assert await cache._storage.get(keys.CACHE, None) is None

    async def test_flush_writes_once(self, cache: DigestCache) -> None:
        cache.set("t", DigestMode.LARGE, "d")
        assert await cache.flush_if_dirty() is True
        assert cache.dirty is False
        assert await cache.flush_if_dirty() is False

        blob = json.loads(await cache._storage.get(keys.CACHE))
        assert blob["large:t"]["result"] == "d"

    async def test_load_round_trips_flushed_state(self) -> None:
        storage = MemoryStorage()
        first = DigestCache(storage)
        first.set("t", DigestMode.SMALL, "short")
        await first.flush_if_dirty()

        second = DigestCache(storage)
        await second.load()
        entry = second.get("t", DigestMode.SMALL)
        assert entry is not None
        assert entry.result == "short"
        assert second.dirty is False

    async def test_load_corrupt_blob_starts_empty(self) -> None:
        storage = MemoryStorage({keys.CACHE: "{not json"})
        cache = DigestCache(storage)
        await cache.load()
        assert len(cache) == 0

    async def test_load_missing_timestamp_defaults_to_zero(self) -> None:
        storage = MemoryStorage({keys.CACHE: json.dumps({"large:t": {"result": "d"}})})
        cache = DigestCache(storage)
        await cache.load()
        entry = cache.get("t", DigestMode.LARGE)
        assert entry is not None
        assert entry.timestamp == 0

    async def test_clear_drops_entries_and_storage_key(self, cache: DigestCache) -> None:
        cache.set("t", DigestMode.LARGE, "d")
        await cache.flush_if_dirty()
        await cache.clear()
        assert len(cache) == 0
        assert cache.dirty is False
        assert await cache._storage.get(keys.CACHE, None) is None

    async def test_failed_write_stays_dirty(self) -> None:
        class _ReadOnlyStorage(MemoryStorage):
            async def set(self, key: str, value: object) -> bool:
                return False

        cache = DigestCache(_ReadOnlyStorage())
        cache.set("t", DigestMode.LARGE, "d")
        assert await cache.flush_if_dirty() is False
        assert cache.dirty is True
