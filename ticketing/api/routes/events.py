"""
Event endpoints with Redis caching on list operations.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.booking import MessageResponse
from ticketing.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from ticketing.services.event_service import (
    create_event,
    delete_event,
    get_event,
    list_events,
    update_event,
)
from ticketing.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from ticketing.core.security import require_admin
from ticketing.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Admin only."""
    event = await create_event(db, event_data)
    await db.commit()
    await invalidate_event_cache()
    return event


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """
    List events with pagination.
    Results are cached in Redis and invalidated whenever an event changes
    or tickets are committed or released.
    """
    cached = await get_cached_events(page, page_size, upcoming_only)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await list_events(db, page, page_size, upcoming_only)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }

    await set_cached_events(page, page_size, upcoming_only, response_data)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single event by ID. Not cached (needs live ticket counts)."""
    return await get_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await update_event(db, event_id, event_data.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await delete_event(db, event_id)
    await db.commit()
    await invalidate_event_cache()
    return MessageResponse(message="Event deleted successfully")
