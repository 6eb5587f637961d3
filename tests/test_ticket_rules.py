from storefront.ticket_rules import (
    accepts_replies,
    allowed_transitions,
    can_transition,
    validate_message,
    validate_subject,
)


def test_transition_table():
    assert allowed_transitions("open") == ["in_progress", "closed"]
    assert allowed_transitions("in_progress") == ["open", "resolved", "closed"]
    assert allowed_transitions("resolved") == ["open", "closed"]
    assert allowed_transitions("closed") == []
    assert not can_transition("open", "open")
    assert not can_transition("open", "resolved")
    assert not can_transition("bogus", "open")


def test_replies_lock_once_resolved():
    assert accepts_replies("open")
    assert accepts_replies("in_progress")
    assert not accepts_replies("resolved")
    assert not accepts_replies("closed")


def test_message_rules():
    assert validate_message("   ") == "Message is required"
    assert validate_message(None) == "Message is required"
    assert validate_message("  123456789  ") == "Message must be at least 10 characters"
    assert validate_message("1234567890") is None
    assert validate_subject("") == "Subject is required"
    assert validate_subject("Refund") is None
