# storefront/client/notifications.py
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .api_client import ApiClient
from .query_cache import NOTIFICATION_COUNT, OptimisticMutation, QueryClient, Snapshot, invalidations_for
from .session import SessionStorage, read_user_id
from .ticket_client import Notifier

# the badge is refreshed on every read; polling is left to the UI
COUNT_STALE_TIME = 0.0


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class MarkNotificationsRead(OptimisticMutation):
    """Zero the badge at once, keep the server's stamp, or restore the old count."""

    key = NOTIFICATION_COUNT

    def __init__(self, cache: QueryClient, api: ApiClient, notifier: Notifier, user_id: Optional[str] = None):
        super().__init__(cache)
        self.invalidates = invalidations_for("mark_notifications_read", user_id)
        self.api = api
        self.notifier = notifier

    def apply(self, current: Any) -> Dict:
        return {
            **(current or {}),
            "count": 0,
            "orderCount": 0,
            "ticketCount": 0,
            "notificationsReadAt": _utc_now(),
        }

    async def mutate(self) -> Dict:
        return await self.api.mark_notifications_read()

    def commit(self, result: Dict) -> None:
        self.cache.set_data(self.key, {
            "count": 0,
            "orderCount": 0,
            "ticketCount": 0,
            "notificationsReadAt": result.get("notificationsReadAt") or _utc_now(),
        })

    def rollback(self, snap: Snapshot, error: Exception) -> None:
        super().rollback(snap, error)
        self.notifier.error(getattr(error, "message", None) or "Failed to mark notifications as read")


class NotificationsClient:
    def __init__(self, api: ApiClient, cache: QueryClient, session: SessionStorage, notifier: Notifier):
        self.api = api
        self.cache = cache
        self.session = session
        self.notifier = notifier

    async def count(self) -> Dict:
        return await self.cache.fetch(NOTIFICATION_COUNT, self.api.notification_count, stale_time=COUNT_STALE_TIME)

    async def mark_read(self) -> Dict:
        return await MarkNotificationsRead(self.cache, self.api, self.notifier, read_user_id(self.session)).run()
