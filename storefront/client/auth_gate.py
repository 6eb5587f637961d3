# storefront/client/auth_gate.py
from dataclasses import dataclass
from typing import Dict, Optional

from ..logger import logger
from .api_client import ApiClient
from .errors import ApiError
from .query_cache import QueryClient, user_key
from .session import SessionStorage, read_role_hint, read_token, read_user_id

LOGIN_PATH = "/login"
FALLBACK_PATH = "/products"
USER_STALE_TIME = 300.0


@dataclass(frozen=True)
class GateDecision:
    action: str  # "render" | "redirect" | "verifying"
    location: Optional[str] = None
    user: Optional[Dict] = None

    @property
    def allowed(self) -> bool:
        return self.action == "render"


VERIFYING = GateDecision("verifying")
TO_LOGIN = GateDecision("redirect", LOGIN_PATH)
TO_FALLBACK = GateDecision("redirect", FALLBACK_PATH)


class AuthGate:
    """Decide whether a protected view may render.

    The token only says someone logged in on this tab; the role always comes
    from the user record the server returns for that token.
    """

    def __init__(self, api: ApiClient, cache: QueryClient, session: SessionStorage):
        self.api = api
        self.cache = cache
        self.session = session

    def initial_decision(self) -> GateDecision:
        return VERIFYING if read_token(self.session) else TO_LOGIN

    async def current_user(self) -> Dict:
        uid = read_user_id(self.session)
        return await self.cache.fetch(user_key(uid), lambda: self.api.get_user(uid), stale_time=USER_STALE_TIME)

    async def resolve(self, required_role: Optional[str] = None) -> GateDecision:
        if not read_token(self.session) or not read_user_id(self.session):
            return TO_LOGIN
        try:
            user = await self.current_user()
        except ApiError as e:
            logger.info(f"[AUTH] user check failed: {e.message}")
            return TO_LOGIN
        role = user.get("role") or read_role_hint(self.session)
        if required_role and role != required_role:
            return TO_FALLBACK
        return GateDecision("render", user=user)
