# storefront/client/api_client.py
from typing import Any, Dict, List, Optional

import httpx

from ..config import clean_env
from ..logger import logger
from .errors import AuthenticationRequired, NetworkError, error_for_status
from .session import SessionStorage, read_token

API_URL = clean_env("STOREFRONT_API_URL", "http://localhost:8000")


class ApiClient:
    """Thin async wrapper over the storefront HTTP API.

    Every failure surfaces as an ``ApiError`` subclass carrying the server's
    ``error``/``message`` text. Pass ``transport`` to talk to an in-process app.
    """

    def __init__(self, session: SessionStorage, base_url: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 15):
        self.session = session
        self._http = httpx.AsyncClient(base_url=base_url or API_URL, transport=transport, timeout=timeout)

    async def aclose(self):
        await self._http.aclose()

    def _headers(self, auth: bool) -> Dict[str, str]:
        if not auth:
            return {}
        token = read_token(self.session)
        if not token:
            raise AuthenticationRequired()
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, *, auth: bool = True,
                       json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        headers = self._headers(auth)
        try:
            r = await self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning(f"[API] {method} {path} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e
        if r.is_error:
            raise error_for_status(r.status_code, _error_message(r))
        if not r.content:
            return None
        return r.json()

    # ---------- auth / users ----------

    async def login(self, email: str, password: str) -> Dict:
        return await self._request("POST", "/login", auth=False, json={"email": email, "password": password})

    async def register(self, name: str, email: str, password: str) -> Dict:
        return await self._request("POST", "/register", auth=False,
                                   json={"name": name, "email": email, "password": password})

    async def get_user(self, user_id: str) -> Dict:
        return await self._request("GET", f"/users/{user_id}")

    # ---------- tickets ----------

    async def list_tickets(self) -> List[Dict]:
        data = await self._request("GET", "/tickets")
        return data.get("tickets", [])

    async def get_ticket(self, ticket_id: str) -> Dict:
        data = await self._request("GET", f"/tickets/{ticket_id}")
        return data["ticket"]

    async def create_ticket(self, subject: str, body: str) -> Dict:
        data = await self._request("POST", "/tickets", json={"subject": subject, "body": body})
        return data["ticket"]

    async def reply_to_ticket(self, ticket_id: str, message: str) -> Dict:
        data = await self._request("POST", f"/tickets/{ticket_id}/replies", json={"message": message})
        return data["ticket"]

    async def update_ticket_status(self, ticket_id: str, status: str) -> Dict:
        data = await self._request("PATCH", f"/tickets/{ticket_id}/status", json={"status": status})
        return data["ticket"]

    # ---------- notifications / activity ----------

    async def notification_count(self) -> Dict:
        return await self._request("GET", "/notifications/count")

    async def mark_notifications_read(self) -> Dict:
        return await self._request("POST", "/notifications/read")

    async def activity_logs(self, entity_type: Optional[str] = None, limit: int = 100) -> List[Dict]:
        params = {"limit": limit}
        if entity_type:
            params["entity_type"] = entity_type
        data = await self._request("GET", "/activity-logs", params=params)
        return data.get("logs", [])

    # ---------- products / orders ----------

    async def list_products(self, name_like: str = "") -> List[Dict]:
        params = {"name_like": name_like} if name_like else None
        return await self._request("GET", "/products", auth=False, params=params)

    async def get_product(self, product_id: str) -> Dict:
        return await self._request("GET", f"/products/{product_id}", auth=False)

    async def featured_products(self) -> List[Dict]:
        return await self._request("GET", "/featured-products", auth=False)

    async def list_orders(self) -> List[Dict]:
        return await self._request("GET", "/orders")

    async def create_order(self, cart_list: List[Dict], amount_paid: float, quantity: int) -> Dict:
        return await self._request("POST", "/orders", json={
            "cartList": cart_list,
            "amount_paid": amount_paid,
            "quantity": quantity,
        })


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return r.reason_phrase or f"Request failed with status {r.status_code}"
