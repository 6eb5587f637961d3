# storefront/client/identity_watcher.py
import asyncio
import contextlib
from typing import Callable, Optional

from ..logger import logger
from .session import SessionStorage, read_user_id

IdentityCallback = Callable[[Optional[str], Optional[str]], None]


class IdentityWatcher:
    """Report changes of the logged-in user id kept in session storage.

    The id is read when started, on every storage or session-changed event and
    once per ``poll_interval`` seconds, which catches writes that fired no event.
    """

    def __init__(self, storage: SessionStorage, on_change: IdentityCallback, poll_interval: float = 1.0):
        self.storage = storage
        self.on_change = on_change
        self.poll_interval = poll_interval
        self._last: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def current(self) -> Optional[str]:
        return self._last

    def check(self, *_event) -> bool:
        uid = read_user_id(self.storage)
        if uid == self._last:
            return False
        previous, self._last = self._last, uid
        logger.debug(f"[SESSION] user id changed {previous!r} -> {uid!r}")
        self.on_change(previous, uid)
        return True

    def start(self) -> None:
        if self._task is not None:
            return
        self._last = read_user_id(self.storage)
        self._unsubscribe = self.storage.subscribe(self.check)
        self._task = asyncio.get_running_loop().create_task(self._poll())

    async def _poll(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            self.check()

    async def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
