"""
Booking service: creation, status transitions and deletion.

CONSISTENCY STRATEGY
====================

Creation is optimistic: it checks that enough tickets are left but does not
hold any. Pending bookings cost the event nothing; only confirmation commits
tickets, and the inventory ledger re-checks capacity at that moment.

A status change is two writes in the request transaction:

  1. UPDATE bookings SET booking_status = :new
     WHERE booking_id = :id AND booking_status = :current
     (compare-and-swap: if another request moved the booking first,
     rows_affected == 0 and we refuse with 409 instead of applying the
     inventory delta twice)
  2. The signed ticket delta through the inventory ledger, whose conditional
     UPDATE raises CapacityExceededError when the event is full

If step 2 raises, the request session rolls back step 1, so the booking and
the event never disagree about whether tickets are held.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import CapacityExceededError, ConflictError, NotFoundError
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_booking_transition
from ticketing.core.permissions import ensure_owner_or_admin, permitted_updates
from ticketing.models.booking import Booking, BookingStatus
from ticketing.models.user import User
from ticketing.services import inventory_service
from ticketing.services.state_machine import BookingStateMachine

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def create_booking(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    quantity: int,
) -> Booking:
    """Create a Pending booking if the event currently has `quantity` tickets left."""
    event = await inventory_service.get_event_snapshot(db, event_id)

    available = inventory_service.available_tickets(event)
    if quantity > available:
        logger.warning(
            "booking_failed_no_tickets",
            event_id=event_id,
            requested=quantity,
            available=available,
        )
        raise CapacityExceededError(requested=quantity, available=available)

    booking = Booking(
        user_id=user_id,
        event_id=event_id,
        quantity=quantity,
        total_amount=event.ticket_price * quantity,
        booking_status=BookingStatus.PENDING.value,
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    logger.info(
        "booking_created",
        booking_id=booking.booking_id,
        user_id=user_id,
        event_id=event_id,
        quantity=quantity,
    )
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.booking_id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def get_booking_for_actor(db: AsyncSession, booking_id: int, actor: User) -> Booking:
    booking = await get_booking(db, booking_id)
    ensure_owner_or_admin(actor, booking.user_id)
    return booking


async def list_bookings(db: AsyncSession) -> list[Booking]:
    result = await db.execute(select(Booking).order_by(Booking.booking_id))
    return list(result.scalars().all())


async def list_user_bookings(db: AsyncSession, user_id: int, actor: User) -> list[Booking]:
    ensure_owner_or_admin(actor, user_id)
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.booking_id.desc())
    )
    return list(result.scalars().all())


async def set_booking_status(
    db: AsyncSession,
    booking_id: int,
    requested_status: BookingStatus,
    actor: User,
) -> Booking:
    """
    Move a booking to `requested_status`, committing or releasing tickets.

    Same-status requests only refresh `updated_at`. Transitions the state
    machine does not allow (anything out of Cancelled, Confirmed -> Pending)
    leave the booking untouched.
    """
    booking = await get_booking_for_actor(db, booking_id, actor)
    current = BookingStatus(booking.booking_status)
    requested = BookingStatus(requested_status)

    if requested == current:
        booking.updated_at = _utcnow()
        await db.flush()
        await db.refresh(booking)
        record_booking_transition(requested.value, "unchanged")
        return booking

    if not BookingStateMachine.can_transition(current, requested):
        logger.info(
            "booking_transition_ignored",
            booking_id=booking_id,
            from_status=current.value,
            to_status=requested.value,
        )
        record_booking_transition(requested.value, "ignored")
        return booking

    delta = BookingStateMachine.ticket_delta(current, requested, booking.quantity)

    swapped = await db.execute(
        update(Booking)
        .where(
            Booking.booking_id == booking_id,
            Booking.booking_status == current.value,
        )
        .values(booking_status=requested.value, updated_at=_utcnow())
        .execution_options(synchronize_session=False)
    )
    if swapped.rowcount == 0:
        record_booking_transition(requested.value, "conflict")
        raise ConflictError("Booking was modified by another request. Please retry.")

    try:
        await inventory_service.apply_delta(db, booking.event_id, delta)
    except CapacityExceededError:
        record_booking_transition(requested.value, "capacity")
        raise

    await db.refresh(booking)
    record_booking_transition(requested.value, "applied")
    logger.info(
        "booking_status_changed",
        booking_id=booking_id,
        from_status=current.value,
        to_status=requested.value,
        ticket_delta=delta,
        actor_id=actor.user_id,
    )
    return booking


async def update_booking(
    db: AsyncSession,
    booking_id: int,
    data: dict[str, Any],
    actor: User,
) -> Booking:
    """Generic update restricted to the actor's allow-listed booking fields."""
    booking = await get_booking_for_actor(db, booking_id, actor)

    changes = permitted_updates("booking", actor, data)
    dropped = sorted(set(data) - set(changes))
    if dropped:
        logger.info("booking_update_fields_dropped", booking_id=booking_id, fields=dropped)

    for field, value in changes.items():
        setattr(booking, field, value)
    booking.updated_at = _utcnow()

    await db.flush()
    await db.refresh(booking)
    return booking


async def delete_booking(db: AsyncSession, booking_id: int, actor: User) -> None:
    """Delete a booking, releasing its tickets first if it was Confirmed."""
    booking = await get_booking_for_actor(db, booking_id, actor)
    status = BookingStatus(booking.booking_status)
    event_id, quantity = booking.event_id, booking.quantity

    deleted = await db.execute(
        delete(Booking).where(
            Booking.booking_id == booking_id,
            Booking.booking_status == status.value,
        )
    )
    if deleted.rowcount == 0:
        raise ConflictError("Booking was modified by another request. Please retry.")

    if BookingStateMachine.holds_tickets(status):
        await inventory_service.release_tickets(db, event_id, quantity)

    logger.info(
        "booking_deleted",
        booking_id=booking_id,
        status=status.value,
        tickets_released=quantity if BookingStateMachine.holds_tickets(status) else 0,
        actor_id=actor.user_id,
    )
