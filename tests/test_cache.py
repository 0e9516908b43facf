"""Tests for the TTL and snapshot caches."""

from __future__ import annotations

from domain.cache import SnapshotCache, TTLCache

from conftest import FakeClock


def test_ttl_cache_expires_entries(clock: FakeClock) -> None:
    cache: TTLCache[str, int] = TTLCache(10.0, clock=clock)
    cache.set("a", 1)
    assert cache.lookup("a").value == 1
    clock.advance(10.0)
    assert cache.lookup("a") is None
    assert cache.lookup_stale("a").value == 1


def test_ttl_cache_remembers_negative_results(clock: FakeClock) -> None:
    cache: TTLCache[str, int | None] = TTLCache(10.0, clock=clock)
    cache.set("missing", None)
    entry = cache.lookup("missing")
    assert entry is not None
    assert entry.value is None


def test_ttl_cache_invalidate_and_clear(clock: FakeClock) -> None:
    cache: TTLCache[str, int] = TTLCache(10.0, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    assert cache.lookup("a") is None
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_snapshot_reloads_only_when_stale(clock: FakeClock) -> None:
    loads: list[int] = []

    def loader() -> list[tuple[str, int]]:
        loads.append(1)
        return [("a", len(loads))]

    snapshot: SnapshotCache[str, tuple[str, int]] = SnapshotCache(
        300.0,
        key=lambda item: item[0],
        clock=clock,
    )
    assert snapshot.get(loader) == [("a", 1)]
    clock.advance(299.0)
    assert snapshot.get(loader) == [("a", 1)]
    clock.advance(2.0)
    assert snapshot.get(loader) == [("a", 2)]
    assert len(loads) == 2


def test_snapshot_upsert_replaces_in_place_and_invalidate(clock: FakeClock) -> None:
    snapshot: SnapshotCache[str, tuple[str, int]] = SnapshotCache(
        300.0,
        key=lambda item: item[0],
        clock=clock,
    )
    snapshot.get(lambda: [("a", 1), ("b", 1)])
    snapshot.upsert(("a", 5))
    assert snapshot.peek() == [("a", 5), ("b", 1)]
    snapshot.upsert(("c", 2))
    assert snapshot.peek() == [("a", 5), ("b", 1), ("c", 2)]
    snapshot.invalidate()
    assert snapshot.peek() == []
    assert snapshot.get(lambda: [("c", 1)]) == [("c", 1)]
