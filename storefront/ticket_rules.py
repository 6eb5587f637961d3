# storefront/ticket_rules.py
"""Ticket status machine and message rules.

Both the HTTP handlers and the client SDK read this table, so the UI never
offers a transition the server would refuse.
"""
from typing import Optional

TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")

STATUS_TRANSITIONS = {
    "open": frozenset({"in_progress", "closed"}),
    "in_progress": frozenset({"open", "resolved", "closed"}),
    # admin reopen
    "resolved": frozenset({"open", "closed"}),
    "closed": frozenset(),
}

REPLY_LOCKED_STATUSES = frozenset({"resolved", "closed"})

MIN_MESSAGE_LENGTH = 10


def is_valid_status(status: Optional[str]) -> bool:
    return status in STATUS_TRANSITIONS


def can_transition(current: str, target: str) -> bool:
    return target in STATUS_TRANSITIONS.get(current, frozenset())


def allowed_transitions(current: str) -> list[str]:
    targets = STATUS_TRANSITIONS.get(current, frozenset())
    return [s for s in TICKET_STATUSES if s in targets]


def accepts_replies(status: str) -> bool:
    return status not in REPLY_LOCKED_STATUSES


def validate_subject(subject: Optional[str]) -> Optional[str]:
    """Return an error message, or None when the subject is acceptable."""
    if not subject or not subject.strip():
        return "Subject is required"
    return None


def validate_message(text: Optional[str], field: str = "Message") -> Optional[str]:
    if not isinstance(text, str) or not text.strip():
        return f"{field} is required"
    if len(text.strip()) < MIN_MESSAGE_LENGTH:
        return f"{field} must be at least {MIN_MESSAGE_LENGTH} characters"
    return None
