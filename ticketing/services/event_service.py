"""
Event service handling CRUD operations.

Inventory (`tickets_sold`) is never written here; see inventory_service.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import ValidationError
from ticketing.models.event import Event
from ticketing.schemas.event import EventCreate
from ticketing.services.inventory_service import get_event_snapshot
from ticketing.core.logging import get_logger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create a new event with nothing sold."""
    event_date = event_data.event_date
    if event_date.tzinfo is None:
        event_date = event_date.replace(tzinfo=timezone.utc)
    if event_date <= datetime.now(timezone.utc):
        raise ValidationError("Event date must be in the future")

    event = Event(
        title=event_data.title,
        description=event_data.description,
        category=event_data.category,
        location=event_data.location,
        event_date=event_date,
        ticket_price=event_data.ticket_price,
        tickets_total=event_data.tickets_total,
        tickets_sold=0,
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.event_id, title=event.title, tickets=event.tickets_total)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    return await get_event_snapshot(db, event_id)


async def update_event(db: AsyncSession, event_id: int, data: dict[str, Any]) -> Event:
    event = await get_event_snapshot(db, event_id)

    new_total = data.get("tickets_total")
    if new_total is not None and new_total < event.tickets_sold:
        raise ValidationError(
            f"tickets_total cannot be lower than tickets already sold ({event.tickets_sold})"
        )

    for field, value in data.items():
        setattr(event, field, value)
    event.updated_at = datetime.now(timezone.utc)

    await db.flush()
    await db.refresh(event)
    logger.info("event_updated", event_id=event_id, fields=sorted(data))
    return event


async def delete_event(db: AsyncSession, event_id: int) -> None:
    event = await get_event_snapshot(db, event_id)
    await db.delete(event)
    await db.flush()
    logger.info("event_deleted", event_id=event_id)


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[Event], int]:
    query = select(Event)

    if upcoming_only:
        query = query.where(Event.event_date >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.event_date.asc(), Event.event_id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total
