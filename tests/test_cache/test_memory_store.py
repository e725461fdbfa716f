"""Tests for the in-memory store backend."""

from __future__ import annotations

from paynym_wallet.cache.memory import MemoryStore


class _Clock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


class TestMemoryStore:
    async def test_set_get(self) -> None:
        store = MemoryStore()
        await store.connect()
        await store.set("key1", "value1")
        assert await store.get("key1") == "value1"

    async def test_get_missing(self) -> None:
        assert await MemoryStore().get("missing") is None

    async def test_delete_and_exists(self) -> None:
        store = MemoryStore()
        await store.set("key1", "value1")
        assert await store.exists("key1")
        await store.delete("key1")
        assert not await store.exists("key1")
        await store.delete("key1")

    async def test_ttl_expiry(self) -> None:
        clock = _Clock()
        store = MemoryStore(clock=clock)
        await store.set("key1", "value1", ttl=10)
        clock.now += 9
        assert await store.get("key1") == "value1"
        clock.now += 2
        assert await store.get("key1") is None
        assert not await store.exists("key1")

    async def test_lru_eviction(self) -> None:
        store = MemoryStore(max_size=2)
        await store.set("a", "1")
        await store.set("b", "2")
        await store.get("a")
        await store.set("c", "3")
        assert await store.get("a") == "1"
        assert await store.get("b") is None
        assert await store.get("c") == "3"

    async def test_keys_by_prefix(self) -> None:
        clock = _Clock()
        store = MemoryStore(clock=clock)
        await store.set("paynym_dir_a", "1")
        await store.set("paynym_dir_b", "2", ttl=1)
        await store.set("other", "3")
        assert sorted(await store.keys("paynym_dir_")) == ["paynym_dir_a", "paynym_dir_b"]
        clock.now += 5
        assert await store.keys("paynym_dir_") == ["paynym_dir_a"]
        assert len(await store.keys()) == 2

    async def test_close_clears(self) -> None:
        store = MemoryStore()
        await store.set("a", "1")
        await store.close()
        assert await store.get("a") is None
