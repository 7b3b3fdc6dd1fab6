import asyncio
import unittest

from portfolio.infrastructure.session_cache import (
    InMemorySessionCache,
    ReadThroughCache,
    contributions_key,
    readme_key,
    repos_key,
)


class TestCacheKeys(unittest.TestCase):
    def test_keys_are_deterministic(self) -> None:
        self.assertEqual(repos_key("octocat"), "repos:octocat")
        self.assertEqual(contributions_key("octocat", 2024), "contributions:octocat:2024")
        self.assertEqual(readme_key("octocat/hello"), "readme:octocat/hello")


class TestReadThroughCache(unittest.IsolatedAsyncioTestCase):
    async def test_miss_calls_producer_and_stores_json(self) -> None:
        store = InMemorySessionCache()
        cache = ReadThroughCache(store)
        calls = []

        async def producer():
            calls.append(1)
            return {"answer": 42}

        first = await cache.read_through("k", producer)
        second = await cache.read_through("k", producer)

        self.assertEqual(first, {"answer": 42})
        self.assertEqual(second, {"answer": 42})
        self.assertEqual(len(calls), 1)
        self.assertEqual(store.get("k"), '{"answer": 42}')

    async def test_producer_error_is_not_cached(self) -> None:
        store = InMemorySessionCache()
        cache = ReadThroughCache(store)

        async def failing():
            raise RuntimeError("down")

        with self.assertRaises(RuntimeError):
            await cache.read_through("k", failing)

        self.assertIsNone(store.get("k"))

    async def test_none_result_is_not_cached(self) -> None:
        store = InMemorySessionCache()
        cache = ReadThroughCache(store)

        async def nothing():
            return None

        self.assertIsNone(await cache.read_through("k", nothing))
        self.assertNotIn("k", store)

    async def test_concurrent_callers_share_one_fetch(self) -> None:
        cache = ReadThroughCache()
        calls = []
        release = asyncio.Event()

        async def slow():
            calls.append(1)
            await release.wait()
            return [1, 2, 3]

        tasks = [asyncio.create_task(cache.read_through("k", slow)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        self.assertEqual(results, [[1, 2, 3]] * 3)
        self.assertEqual(len(calls), 1)
        self.assertEqual(cache._locks, {})

    async def test_key_locks_are_dropped_after_use(self) -> None:
        cache = ReadThroughCache()

        async def failing():
            raise RuntimeError("down")

        async def producer():
            return "value"

        for i in range(5):
            await cache.read_through(f"k{i}", producer)
        with self.assertRaises(RuntimeError):
            await cache.read_through("broken", failing)

        self.assertEqual(cache._locks, {})
        self.assertEqual(cache._lock_users, {})

    async def test_invalidate_forces_recompute(self) -> None:
        cache = ReadThroughCache()
        values = iter(["old", "new"])

        async def producer():
            return next(values)

        self.assertEqual(await cache.read_through("k", producer), "old")
        cache.invalidate("k")
        self.assertEqual(await cache.read_through("k", producer), "new")

    async def test_corrupt_entry_is_discarded(self) -> None:
        store = InMemorySessionCache()
        store.set("k", "{not json")
        cache = ReadThroughCache(store)

        async def producer():
            return "fresh"

        self.assertEqual(await cache.read_through("k", producer), "fresh")
        self.assertEqual(store.get("k"), '"fresh"')
