# storefront/client/query_cache.py
"""Keyed query cache shared by the client SDK.

Each key holds the last fetched value. A key is fresh until its ``stale_time``
elapses (``None`` means fresh until invalidated). Concurrent readers of a key
share one in-flight fetch, and ``invalidate`` makes the next read fetch again.
"""
import asyncio
import copy
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from ..logger import logger
from .errors import ApiError

TICKETS = "tickets"
NOTIFICATION_COUNT = "notification-count"
USER = "user"
ACTIVITY_LOG = "activity-log"


def ticket_key(ticket_id: str) -> str:
    return f"ticket:{ticket_id}"

def user_key(user_id: Optional[str]) -> str:
    # one entry per signed-in user, so a session swap never reads another user's record
    return f"{USER}:{user_id}"


# keys each mutation makes stale once it succeeds; the argument is the ticket id,
# or the user id for mark_notifications_read
MUTATION_INVALIDATIONS: Dict[str, Callable[..., List[str]]] = {
    "create_ticket": lambda entity_id=None: [TICKETS, NOTIFICATION_COUNT, ACTIVITY_LOG],
    "reply_to_ticket": lambda entity_id=None: [TICKETS, ticket_key(entity_id), NOTIFICATION_COUNT, ACTIVITY_LOG],
    "update_ticket_status": lambda entity_id=None: [TICKETS, ticket_key(entity_id), NOTIFICATION_COUNT, ACTIVITY_LOG],
    "mark_notifications_read": lambda entity_id=None: [user_key(entity_id)],
    "place_order": lambda entity_id=None: [NOTIFICATION_COUNT],
}


def invalidations_for(mutation: str, entity_id: Optional[str] = None) -> List[str]:
    return MUTATION_INVALIDATIONS[mutation](entity_id)


@dataclass
class QueryState:
    data: Any = None
    updated_at: Optional[float] = None
    stale: bool = True
    # bumped on every invalidation so a fetch started earlier can't mark the key fresh
    generation: int = 0


@dataclass
class Snapshot:
    key: str
    state: Optional[QueryState] = field(default=None)
    epoch: int = 0


class QueryClient:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, QueryState] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # bumped by clear(); fetches begun under an older epoch never write back
        self._epoch = 0

    # ---------- reads ----------

    def get_data(self, key: str) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def is_fresh(self, key: str, stale_time: Optional[float] = None) -> bool:
        entry = self._entries.get(key)
        if not entry or entry.stale or entry.updated_at is None:
            return False
        if stale_time is None:
            return True
        return self._clock() - entry.updated_at < stale_time

    async def fetch(self, key: str, fn: Callable[[], Awaitable[Any]], *,
                    stale_time: Optional[float] = None, retry: int = 1) -> Any:
        if self.is_fresh(key, stale_time):
            return self.get_data(key)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, fn, retry, self._stamp(key)))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        # a cancelled reader must not cancel the fetch other readers await
        return await asyncio.shield(task)

    async def _run(self, key: str, fn: Callable[[], Awaitable[Any]], retry: int, stamp: tuple) -> Any:
        attempt = 0
        while True:
            try:
                data = await fn()
                break
            except ApiError as e:
                if attempt >= retry or not e.transient:
                    raise
                attempt += 1
                logger.debug(f"[CACHE] retrying {key} after {e.message}")
        # invalidated or cleared while in flight: hand the result to its readers but keep the key stale
        if self._stamp(key) == stamp:
            self.set_data(key, data)
        return data

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # keep asyncio from reporting an exception nobody awaited
        if not task.cancelled():
            task.exception()

    def _stamp(self, key: str) -> tuple:
        return self._epoch, self._entry(key).generation

    def _entry(self, key: str) -> QueryState:
        return self._entries.setdefault(key, QueryState())

    # ---------- writes ----------

    def set_data(self, key: str, data: Any) -> None:
        entry = self._entry(key)
        entry.data = data
        entry.updated_at = self._clock()
        entry.stale = False

    def invalidate(self, *keys: str) -> None:
        for key in keys:
            entry = self._entry(key)
            entry.stale = True
            entry.generation += 1
            # the next reader starts a new fetch instead of joining the old one
            self._inflight.pop(key, None)
        if keys:
            logger.debug(f"[CACHE] invalidated {', '.join(keys)}")

    def clear(self) -> None:
        # readers already awaiting a fetch still get its result; the cache just drops it
        self._epoch += 1
        self._inflight.clear()
        self._entries.clear()

    def lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def snapshot(self, key: str) -> Snapshot:
        entry = self._entries.get(key)
        return Snapshot(key, copy.deepcopy(entry) if entry else None, self._epoch)

    def restore(self, snap: Snapshot) -> None:
        if snap.epoch != self._epoch:
            return
        if snap.state is None:
            self._entries.pop(snap.key, None)
        else:
            self._entries[snap.key] = snap.state


class OptimisticMutation:
    """Apply a change to a cached key before the server confirms it.

    Subclasses implement ``mutate`` and may override the hooks. ``run`` holds
    the key's lock, so mutations of one key never interleave:

        prepare -> apply -> mutate -> commit        (success)
        prepare -> apply -> mutate -> rollback      (failure, error re-raised)
    """

    key: str = ""
    invalidates: Iterable[str] = ()

    def __init__(self, cache: QueryClient):
        self.cache = cache

    def prepare(self) -> Snapshot:
        # results of reads already in flight must not overwrite the optimistic value
        self.cache.invalidate(self.key)
        return self.cache.snapshot(self.key)

    def apply(self, current: Any) -> Any:
        return current

    async def mutate(self) -> Any:
        raise NotImplementedError

    def commit(self, result: Any) -> None:
        pass

    def rollback(self, snap: Snapshot, error: Exception) -> None:
        self.cache.restore(snap)

    async def run(self) -> Any:
        async with self.cache.lock(self.key):
            snap = self.prepare()
            self.cache.set_data(self.key, self.apply(self.cache.get_data(self.key)))
            try:
                result = await self.mutate()
            except Exception as e:
                self.rollback(snap, e)
                raise
            self.commit(result)
            self.cache.invalidate(*self.invalidates)
            return result
