import asyncio

import pytest

from storefront.client.errors import NetworkError, NotFound, ApiError
from storefront.client.query_cache import (
    OptimisticMutation,
    QueryClient,
    invalidations_for,
    ticket_key,
    user_key,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class Counter:
    def __init__(self, *results):
        self.calls = 0
        self.results = list(results)

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        result = self.results.pop(0) if self.results else self.calls
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_concurrent_readers_share_one_fetch():
    cache = QueryClient()
    fn = Counter("tickets")

    results = await asyncio.gather(*(cache.fetch("tickets", fn) for _ in range(5)))

    assert results == ["tickets"] * 5
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_fresh_until_invalidated():
    cache = QueryClient()
    fn = Counter()

    assert await cache.fetch("tickets", fn) == 1
    assert await cache.fetch("tickets", fn) == 1
    cache.invalidate("tickets")
    assert await cache.fetch("tickets", fn) == 2


@pytest.mark.asyncio
async def test_stale_time_expires():
    clock = FakeClock()
    cache = QueryClient(clock=clock)
    fn = Counter()

    await cache.fetch("user", fn, stale_time=10)
    clock.now = 5
    assert await cache.fetch("user", fn, stale_time=10) == 1
    clock.now = 11
    assert await cache.fetch("user", fn, stale_time=10) == 2


@pytest.mark.asyncio
async def test_transient_errors_are_retried_once():
    cache = QueryClient()
    fn = Counter(NetworkError("offline"), "ok")
    assert await cache.fetch("a", fn) == "ok"
    assert fn.calls == 2

    failing = Counter(ApiError("boom", 503), ApiError("boom", 503), "never")
    with pytest.raises(ApiError):
        await cache.fetch("b", failing)
    assert failing.calls == 2


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    cache = QueryClient()
    fn = Counter(NotFound("gone", 404), "never")

    with pytest.raises(NotFound):
        await cache.fetch("ticket:1", fn)

    assert fn.calls == 1
    assert cache.get_data("ticket:1") is None


@pytest.mark.asyncio
async def test_invalidation_during_fetch_keeps_key_stale():
    cache = QueryClient()
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return "old"

    task = asyncio.ensure_future(cache.fetch("tickets", slow))
    await asyncio.sleep(0)
    cache.invalidate("tickets")
    gate.set()

    assert await task == "old"
    assert not cache.is_fresh("tickets")


@pytest.mark.asyncio
async def test_clear_lets_waiting_readers_finish():
    cache = QueryClient()
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return "admin"

    readers = [asyncio.ensure_future(cache.fetch("user:1", slow)) for _ in range(2)]
    await asyncio.sleep(0)
    cache.clear()
    gate.set()

    assert await asyncio.gather(*readers) == ["admin", "admin"]
    assert cache.get_data("user:1") is None
    assert not cache.is_fresh("user:1")


@pytest.mark.asyncio
async def test_fetch_from_before_clear_never_writes_back():
    cache = QueryClient()
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return "previous user"

    old = asyncio.ensure_future(cache.fetch("tickets", slow))
    await asyncio.sleep(0)
    cache.clear()
    assert await cache.fetch("tickets", Counter("current user")) == "current user"
    gate.set()
    await old

    assert cache.get_data("tickets") == "current user"

def test_invalidation_table():
    assert invalidations_for("create_ticket") == ["tickets", "notification-count", "activity-log"]
    assert invalidations_for("reply_to_ticket", "t1") == [
        "tickets", ticket_key("t1"), "notification-count", "activity-log",
    ]
    assert invalidations_for("update_ticket_status", "t1") == invalidations_for("reply_to_ticket", "t1")
    assert invalidations_for("mark_notifications_read", "u1") == [user_key("u1")]
    assert user_key("u1") != user_key("u2")


class SetFlag(OptimisticMutation):
    key = "flag"
    invalidates = ("other",)

    def __init__(self, cache, outcome):
        super().__init__(cache)
        self.outcome = outcome

    def apply(self, current):
        return {**(current or {}), "flag": True}

    async def mutate(self):
        await asyncio.sleep(0)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.mark.asyncio
async def test_optimistic_mutation_commits():
    cache = QueryClient()
    cache.set_data("flag", {"flag": False, "n": 1})
    cache.set_data("other", "x")

    assert await SetFlag(cache, "done").run() == "done"

    assert cache.get_data("flag") == {"flag": True, "n": 1}
    assert not cache.is_fresh("other")


@pytest.mark.asyncio
async def test_optimistic_mutation_rolls_back():
    cache = QueryClient()
    cache.set_data("flag", {"flag": False, "n": 1})

    with pytest.raises(ApiError):
        await SetFlag(cache, ApiError("nope", 500)).run()

    assert cache.get_data("flag") == {"flag": False, "n": 1}


@pytest.mark.asyncio
async def test_rollback_after_clear_restores_nothing():
    cache = QueryClient()
    cache.set_data("flag", {"flag": False, "n": 1})

    class ClearsThenFails(SetFlag):
        async def mutate(self):
            self.cache.clear()
            raise ApiError("nope", 500)

    with pytest.raises(ApiError):
        await ClearsThenFails(cache, None).run()

    assert cache.get_data("flag") is None
