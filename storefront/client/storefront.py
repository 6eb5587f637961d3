# storefront/client/storefront.py
from typing import Dict, Optional

import httpx

from ..logger import logger
from .api_client import ApiClient
from .auth_gate import AuthGate
from .cart_store import CartStore
from .errors import ValidationFailed
from .identity_watcher import IdentityWatcher
from .notifications import NotificationsClient
from .query_cache import QueryClient, invalidations_for
from .session import SessionStorage, clear_login, save_login
from .ticket_client import Notifier, TicketClient


class Storefront:
    """Root composition of the client: one instance per browser-tab session.

    Owns the session storage, the query cache and the cart, and wires both
    to the identity watcher so a different (or no) user never sees the
    previous user's cart or cached data. Use as ``async with Storefront(...) as shop``.
    """

    def __init__(self, base_url: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 storage: Optional[SessionStorage] = None,
                 notifier: Optional[Notifier] = None,
                 poll_interval: float = 1.0):
        self.session = storage if storage is not None else SessionStorage()
        self.notifier = notifier or Notifier()
        self.api = ApiClient(self.session, base_url=base_url, transport=transport)
        self.cache = QueryClient()
        self.cart = CartStore()
        self.tickets = TicketClient(self.api, self.cache, self.session, self.notifier)
        self.notifications = NotificationsClient(self.api, self.cache, self.session, self.notifier)
        self.gate = AuthGate(self.api, self.cache, self.session)
        self.watcher = IdentityWatcher(self.session, self._identity_changed, poll_interval)

    async def __aenter__(self):
        self.watcher.start()
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        await self.watcher.stop()
        await self.api.aclose()

    async def login(self, email: str, password: str) -> Dict:
        data = await self.api.login(email, password)
        return self._signed_in(data)

    async def register(self, name: str, email: str, password: str) -> Dict:
        data = await self.api.register(name, email, password)
        return self._signed_in(data)

    def _signed_in(self, data: Dict) -> Dict:
        # cached queries belong to whoever was signed in before
        self.cache.clear()
        save_login(self.session, data["accessToken"], data["user"])
        logger.info(f"[AUTH] signed in {data['user']['id']}")
        return data["user"]

    def _identity_changed(self, previous: Optional[str], current: Optional[str]) -> None:
        # fires on storage events, session-changed signals and the poll alike
        self.cache.clear()
        self.cart.handle_identity_change(previous, current)
        logger.info("[SESSION] identity changed, dropped cached queries")

    async def logout(self) -> None:
        clear_login(self.session)
        self.cache.clear()
        self.cart.clear_cart()

    async def place_order(self) -> Dict:
        snap = self.cart.snapshot()
        if not snap["items"]:
            raise ValidationFailed("Your cart is empty")
        order = await self.api.create_order(snap["items"], snap["total"], self.cart.count)
        self.cart.clear_cart()
        self.cache.invalidate(*invalidations_for("place_order"))
        return order
