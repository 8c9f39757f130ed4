"""
Lifecycle rules for bookings and payments.

The two machines are deliberately independent: a payment completing does not
confirm its booking, and confirming a booking does not require a completed
payment. The client links them by calling the booking status endpoint once it
sees the payment complete.
"""

from typing import Dict, Set

from ticketing.models.booking import BookingStatus
from ticketing.models.payment import PaymentStatus


class BookingStateMachine:
    """
    Legal booking transitions and their effect on the event inventory.

    Pending -> Confirmed commits `quantity` tickets, Confirmed -> Cancelled
    releases them, Pending -> Cancelled never held any. Cancelled is terminal.
    """

    _ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
        BookingStatus.PENDING: {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CONFIRMED: {
            BookingStatus.CANCELLED,
        },
        BookingStatus.CANCELLED: set(),
    }

    @classmethod
    def can_transition(cls, from_status: BookingStatus, to_status: BookingStatus) -> bool:
        return to_status in cls._ALLOWED_TRANSITIONS[BookingStatus(from_status)]

    @classmethod
    def is_terminal(cls, status: BookingStatus) -> bool:
        return not cls._ALLOWED_TRANSITIONS[BookingStatus(status)]

    @classmethod
    def holds_tickets(cls, status: BookingStatus) -> bool:
        return BookingStatus(status) == BookingStatus.CONFIRMED

    @classmethod
    def ticket_delta(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
        quantity: int,
    ) -> int:
        """
        Signed change to the event's tickets_sold for a transition.

        Zero for same-state writes and for transitions that are not allowed.
        """
        from_status, to_status = BookingStatus(from_status), BookingStatus(to_status)
        if from_status == to_status or not cls.can_transition(from_status, to_status):
            return 0
        held_before = cls.holds_tickets(from_status)
        held_after = cls.holds_tickets(to_status)
        if held_after and not held_before:
            return quantity
        if held_before and not held_after:
            return -quantity
        return 0


class PaymentStateMachine:
    """
    Pending -> Processing when an STK push is accepted, then Completed or
    Failed from the callback. A failed payment can be pushed again. Completed
    is terminal; re-applying Completed is an idempotent write.
    """

    _ALLOWED_TRANSITIONS: Dict[PaymentStatus, Set[PaymentStatus]] = {
        PaymentStatus.PENDING: {
            PaymentStatus.PROCESSING,
            PaymentStatus.COMPLETED,
            PaymentStatus.FAILED,
        },
        PaymentStatus.PROCESSING: {
            PaymentStatus.PROCESSING,
            PaymentStatus.COMPLETED,
            PaymentStatus.FAILED,
        },
        PaymentStatus.FAILED: {
            PaymentStatus.PROCESSING,
            PaymentStatus.COMPLETED,
            PaymentStatus.FAILED,
        },
        PaymentStatus.COMPLETED: {
            PaymentStatus.COMPLETED,
        },
    }

    @classmethod
    def can_transition(cls, from_status: PaymentStatus, to_status: PaymentStatus) -> bool:
        return PaymentStatus(to_status) in cls._ALLOWED_TRANSITIONS[PaymentStatus(from_status)]

    @classmethod
    def is_terminal(cls, status: PaymentStatus) -> bool:
        return PaymentStatus(status) == PaymentStatus.COMPLETED
