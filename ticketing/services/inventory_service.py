"""
Inventory ledger: how many tickets an event has left, and the only code that
writes `events.tickets_sold`.

CONCURRENCY STRATEGY: Conditional UPDATE
=========================================

Problem:
  Two requests confirm bookings for the last tickets simultaneously.
  Both read tickets_sold=8 of 10, both add 2, both succeed.
  Result: oversold event.

Solution:
  The capacity check and the increment are one statement:

    UPDATE events SET tickets_sold = tickets_sold + :q
    WHERE event_id = :id AND tickets_sold + :q <= tickets_total

  If rows_affected == 0 the event is either gone or full; we re-read it to
  tell which and raise. The database serializes concurrent updates of the row,
  so the second request sees the first one's increment.

  Releases never fail a capacity check; they floor at zero with a CASE so a
  double release cannot drive the counter negative.

  The statement runs inside the request transaction, so the booking write
  that triggered it commits or rolls back with it.
"""

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import CapacityExceededError, NotFoundError
from ticketing.core.logging import get_logger
from ticketing.core.metrics import inventory_commit_conflicts
from ticketing.models.event import Event

logger = get_logger(__name__)


def available_tickets(event: Event) -> int:
    return event.tickets_total - event.tickets_sold


async def get_event_snapshot(db: AsyncSession, event_id: int) -> Event:
    """Read the event's current row, bypassing any stale identity-map copy."""
    result = await db.execute(
        select(Event)
        .where(Event.event_id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def commit_tickets(db: AsyncSession, event_id: int, quantity: int) -> None:
    """Atomically add `quantity` to tickets_sold, or raise CapacityExceededError."""
    result = await db.execute(
        update(Event)
        .where(
            Event.event_id == event_id,
            Event.tickets_sold + quantity <= Event.tickets_total,
        )
        .values(tickets_sold=Event.tickets_sold + quantity)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        event = await get_event_snapshot(db, event_id)
        inventory_commit_conflicts.inc()
        logger.warning(
            "tickets_commit_rejected",
            event_id=event_id,
            requested=quantity,
            available=available_tickets(event),
        )
        raise CapacityExceededError(requested=quantity, available=available_tickets(event))

    logger.info("tickets_committed", event_id=event_id, quantity=quantity)


async def release_tickets(db: AsyncSession, event_id: int, quantity: int) -> None:
    """Subtract `quantity` from tickets_sold, never going below zero."""
    await db.execute(
        update(Event)
        .where(Event.event_id == event_id)
        .values(
            tickets_sold=case(
                (Event.tickets_sold >= quantity, Event.tickets_sold - quantity),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    logger.info("tickets_released", event_id=event_id, quantity=quantity)


async def apply_delta(db: AsyncSession, event_id: int, delta: int) -> None:
    """Apply a signed change to tickets_sold."""
    if delta > 0:
        await commit_tickets(db, event_id, delta)
    elif delta < 0:
        await release_tickets(db, event_id, -delta)
