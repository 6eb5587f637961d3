# storefront/client/ticket_client.py
from typing import Callable, Dict, List, Optional, Tuple

from ..logger import logger
from ..ticket_rules import (
    accepts_replies,
    allowed_transitions,
    can_transition,
    is_valid_status,
    validate_message,
    validate_subject,
)
from .api_client import ApiClient
from .errors import ApiError, AuthenticationRequired, Forbidden, NotFound, ValidationFailed
from .query_cache import TICKETS, QueryClient, invalidations_for, ticket_key
from .session import SessionStorage, read_email_hint, read_role_hint, read_token


class Notifier:
    """Collects user-facing toasts; ``sink`` lets a UI render them as they come."""

    def __init__(self, sink: Optional[Callable[[str, str], None]] = None):
        self.sink = sink
        self.messages: List[Tuple[str, str]] = []

    def _push(self, level: str, message: str):
        self.messages.append((level, message))
        if self.sink:
            self.sink(level, message)

    def success(self, message: str):
        self._push("success", message)

    def error(self, message: str):
        logger.info(f"[TOAST] {message}")
        self._push("error", message)


def sorted_messages(ticket: Dict) -> List[Dict]:
    return sorted(ticket.get("messages") or [], key=lambda m: m.get("createdAt") or "")

def reply_form_visible(ticket: Dict) -> bool:
    return accepts_replies(ticket.get("status"))

def available_transitions(ticket: Dict) -> List[str]:
    return allowed_transitions(ticket.get("status"))


class TicketClient:
    def __init__(self, api: ApiClient, cache: QueryClient, session: SessionStorage, notifier: Notifier):
        self.api = api
        self.cache = cache
        self.session = session
        self.notifier = notifier

    def _require_session(self):
        if not read_token(self.session):
            raise AuthenticationRequired()

    def _is_admin(self) -> bool:
        return read_role_hint(self.session) == "admin"

    # ---------- reads ----------

    async def list_tickets(self) -> List[Dict]:
        self._require_session()
        try:
            tickets = await self.cache.fetch(TICKETS, self.api.list_tickets)
        except ApiError as e:
            self._report_read_error(e, "Failed to load tickets")
            raise
        email = (read_email_hint(self.session) or "").lower()
        if not self._is_admin() and email:
            tickets = [t for t in tickets if (t.get("customerEmail") or "").lower() == email]
        return sorted(tickets, key=lambda t: t.get("updatedAt") or "", reverse=True)

    async def get_ticket(self, ticket_id: str) -> Dict:
        self._require_session()
        try:
            ticket = await self.cache.fetch(ticket_key(ticket_id), lambda: self.api.get_ticket(ticket_id))
        except Forbidden as e:
            if self._is_admin():
                raise
            # customers can't tell someone else's ticket from a missing one
            raise NotFound("Ticket not found", 404) from e
        except ApiError as e:
            self._report_read_error(e, "Failed to load ticket")
            raise
        return {**ticket, "messages": sorted_messages(ticket)}

    def _report_read_error(self, e: ApiError, fallback: str):
        if e.transient:
            self.notifier.error(e.message or fallback)

    # ---------- mutations ----------

    async def create_ticket(self, subject: str, body: str) -> Dict:
        self._require_session()
        error = validate_subject(subject) or validate_message(body, "Message")
        if error:
            raise ValidationFailed(error)
        ticket = await self._mutate(
            lambda: self.api.create_ticket(subject.strip(), body.strip()),
            "Failed to create ticket",
        )
        self.cache.invalidate(*invalidations_for("create_ticket"))
        self.notifier.success("Ticket created successfully")
        return ticket

    async def reply_to_ticket(self, ticket_id: str, message: str) -> Dict:
        self._require_session()
        error = validate_message(message)
        if error:
            raise ValidationFailed(error)
        key = ticket_key(ticket_id)
        async with self.cache.lock(key):
            cached = self.cache.get_data(key)
            if cached and not reply_form_visible(cached):
                raise ValidationFailed(f"Ticket is {cached['status']}; replies are closed")
            ticket = await self._mutate(
                lambda: self.api.reply_to_ticket(ticket_id, message.strip()),
                "Failed to send reply",
            )
            self.cache.set_data(key, ticket)
            self.cache.invalidate(*invalidations_for("reply_to_ticket", ticket_id))
        self.notifier.success("Reply sent")
        return {**ticket, "messages": sorted_messages(ticket)}

    async def update_ticket_status(self, ticket_id: str, status: str) -> Dict:
        self._require_session()
        if not is_valid_status(status):
            raise ValidationFailed(f"Unknown status: {status}")
        key = ticket_key(ticket_id)
        async with self.cache.lock(key):
            cached = self.cache.get_data(key)
            if cached and not can_transition(cached["status"], status):
                raise ValidationFailed(f"Cannot move ticket from {cached['status']} to {status}")
            ticket = await self._mutate(
                lambda: self.api.update_ticket_status(ticket_id, status),
                "Failed to update ticket status",
            )
            self.cache.set_data(key, ticket)
            self.cache.invalidate(*invalidations_for("update_ticket_status", ticket_id))
        self.notifier.success(f"Ticket marked {status.replace('_', ' ')}")
        return {**ticket, "messages": sorted_messages(ticket)}

    async def _mutate(self, call, fallback: str) -> Dict:
        # mutations are never retried; the cache is only touched after success
        try:
            return await call()
        except ApiError as e:
            self.notifier.error(e.message or fallback)
            raise
