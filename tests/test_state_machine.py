"""
Unit tests for the booking and payment lifecycle rules.
"""

import pytest

from ticketing.models.booking import BookingStatus
from ticketing.models.payment import PaymentStatus
from ticketing.services.state_machine import BookingStateMachine, PaymentStateMachine


@pytest.mark.parametrize(
    "from_status,to_status,expected",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED, True),
        (BookingStatus.PENDING, BookingStatus.CANCELLED, True),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, True),
        (BookingStatus.CONFIRMED, BookingStatus.PENDING, False),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED, False),
        (BookingStatus.CANCELLED, BookingStatus.PENDING, False),
    ],
)
def test_booking_transitions(from_status, to_status, expected):
    assert BookingStateMachine.can_transition(from_status, to_status) is expected


def test_booking_terminal_state():
    assert BookingStateMachine.is_terminal(BookingStatus.CANCELLED)
    assert not BookingStateMachine.is_terminal(BookingStatus.PENDING)
    assert not BookingStateMachine.is_terminal(BookingStatus.CONFIRMED)


def test_only_confirmed_holds_tickets():
    assert BookingStateMachine.holds_tickets("Confirmed")
    assert not BookingStateMachine.holds_tickets("Pending")
    assert not BookingStateMachine.holds_tickets("Cancelled")


@pytest.mark.parametrize(
    "from_status,to_status,delta",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED, 4),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, -4),
        (BookingStatus.PENDING, BookingStatus.CANCELLED, 0),
        (BookingStatus.CONFIRMED, BookingStatus.CONFIRMED, 0),
        (BookingStatus.CONFIRMED, BookingStatus.PENDING, 0),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED, 0),
    ],
)
def test_ticket_delta(from_status, to_status, delta):
    assert BookingStateMachine.ticket_delta(from_status, to_status, 4) == delta


def test_payment_can_move_to_processing_until_completed():
    assert PaymentStateMachine.can_transition(PaymentStatus.PENDING, PaymentStatus.PROCESSING)
    assert PaymentStateMachine.can_transition(PaymentStatus.FAILED, PaymentStatus.PROCESSING)
    assert not PaymentStateMachine.can_transition(PaymentStatus.COMPLETED, PaymentStatus.PROCESSING)


def test_completed_payment_only_accepts_repeat_completion():
    assert PaymentStateMachine.can_transition("Completed", "Completed")
    assert not PaymentStateMachine.can_transition("Completed", "Failed")
    assert not PaymentStateMachine.can_transition("Completed", "Pending")
    assert PaymentStateMachine.is_terminal("Completed")
    assert not PaymentStateMachine.is_terminal("Failed")


def test_payment_cannot_return_to_pending():
    assert not PaymentStateMachine.can_transition(PaymentStatus.PROCESSING, PaymentStatus.PENDING)
    assert not PaymentStateMachine.can_transition(PaymentStatus.FAILED, PaymentStatus.PENDING)
