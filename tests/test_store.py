"""Tests for the snapshot key-value store backends."""

import pytest

from core.schemas import HealthScore, HealthScoreComponent, RefreshError
from data import store as keys
from data.snapshots import load, load_refresh_metadata
from data.store import MemoryStore, SqlStore, create_store


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _score() -> HealthScore:
    return HealthScore(
        overall=72,
        components={
            "responsiveness": HealthScoreComponent(score=60, weight=0.35, description="x"),
        },
        calculated_at="2024-03-14T12:00:00Z",
    )


def test_key_helpers():
    assert keys.overview_key("github", "30d") == "github:overview:30d"
    assert keys.repo_key("canonical", "snapd", "30d") == "github:repo:canonical_snapd:30d"


def test_create_store_defaults_to_memory(cfg):
    assert create_store(cfg).backend == "memory"


@pytest.mark.asyncio
async def test_memory_store_round_trip():
    store = MemoryStore()
    await store.set("a", {"x": [1, 2]})
    assert await store.get("a") == {"x": [1, 2]}
    assert await store.get("missing") is None

    await store.delete("a")
    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_memory_store_returns_copies():
    store = MemoryStore()
    value = {"items": [1]}
    await store.set("k", value)
    value["items"].append(2)
    fetched = await store.get("k")
    fetched["items"].append(3)
    assert await store.get("k") == {"items": [1]}


@pytest.mark.asyncio
async def test_memory_store_ttl():
    clock = FakeClock()
    store = MemoryStore(clock=clock)
    await store.set("short", "v", ttl_seconds=10)
    await store.set("forever", "v")

    clock.now += 10
    assert await store.get("short") == "v"
    clock.now += 1
    assert await store.get("short") is None
    assert await store.get("forever") == "v"


@pytest.mark.asyncio
async def test_memory_store_keys_by_prefix():
    clock = FakeClock()
    store = MemoryStore(clock=clock)
    await store.set("github:repo:b", 1)
    await store.set("github:repo:a", 1)
    await store.set("github:repo:gone", 1, ttl_seconds=5)
    await store.set("health:score", 1)

    clock.now += 6
    assert await store.keys("github:repo:") == ["github:repo:a", "github:repo:b"]


@pytest.mark.asyncio
async def test_snapshot_models_round_trip_through_store():
    store = MemoryStore()
    await store.set(keys.HEALTH_SCORE, _score())
    loaded = await load(store, keys.HEALTH_SCORE, HealthScore)
    assert loaded == _score()


@pytest.mark.asyncio
async def test_malformed_snapshot_reads_as_missing():
    store = MemoryStore()
    await store.set(keys.HEALTH_SCORE, {"overall": "not a number"})
    assert await load(store, keys.HEALTH_SCORE, HealthScore) is None


@pytest.mark.asyncio
async def test_refresh_metadata_defaults_when_empty():
    meta = await load_refresh_metadata(MemoryStore())
    assert meta.last_success is None
    assert meta.last_status is None
    assert meta.last_errors == []


@pytest.mark.asyncio
async def test_refresh_metadata_reads_stored_values():
    store = MemoryStore()
    await store.set(keys.REFRESH_LAST_STATUS, "partial")
    await store.set(keys.REFRESH_LAST_SUCCESS, "2024-03-14T12:00:00Z")
    await store.set(keys.REFRESH_LAST_ERRORS, [
        RefreshError(source="github", error="boom", timestamp="2024-03-14T12:00:00Z"),
    ])
    meta = await load_refresh_metadata(store)
    assert meta.last_status == "partial"
    assert meta.last_success == "2024-03-14T12:00:00Z"
    assert [e.source for e in meta.last_errors] == ["github"]


@pytest.mark.asyncio
async def test_sql_store(tmp_path):
    clock = FakeClock()
    store = SqlStore(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", clock=clock)
    await store.init()
    try:
        assert store.backend == "sql"
        await store.set(keys.HEALTH_SCORE, _score())
        assert await load(store, keys.HEALTH_SCORE, HealthScore) == _score()

        # upsert replaces the previous value
        await store.set("github:repo:a", {"v": 1})
        await store.set("github:repo:a", {"v": 2})
        assert await store.get("github:repo:a") == {"v": 2}

        await store.set("github:repo:b", [1, 2], ttl_seconds=60)
        await store.set("github:repo:100%_x", "escaped")
        assert await store.keys("github:repo:") == [
            "github:repo:100%_x",
            "github:repo:a",
            "github:repo:b",
        ]
        assert await store.keys("github:repo:100%") == ["github:repo:100%_x"]

        clock.now += 61
        assert await store.get("github:repo:b") is None
        assert "github:repo:b" not in await store.keys("github:")

        await store.delete("github:repo:a")
        assert await store.get("github:repo:a") is None
        assert await store.get("never-set") is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_sql_store_persists_across_instances(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"
    first = SqlStore(url)
    await first.init()
    await first.set(keys.REFRESH_LAST_STATUS, "ok")
    await first.close()

    second = SqlStore(url)
    await second.init()
    try:
        assert await second.get(keys.REFRESH_LAST_STATUS) == "ok"
    finally:
        await second.close()
