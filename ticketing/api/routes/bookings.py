"""
Booking endpoints.

Creating a booking holds nothing. Tickets are committed when a booking moves
to Confirmed and released when it leaves Confirmed, both through
PATCH /bookings/{id}/status.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    BookingUpdate,
    MessageResponse,
)
from ticketing.services import booking_service
from ticketing.services.cache_service import invalidate_event_cache
from ticketing.core.security import get_current_user, require_admin

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("", response_model=list[BookingResponse])
async def list_all_bookings(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.list_bookings(db)


@router.get("/user/{user_id}", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.list_user_bookings(db, user_id, actor)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a Pending booking for the authenticated user.

    Fails with 400 if the event does not currently have enough tickets left.
    """
    return await booking_service.create_booking(
        db, user.user_id, booking_data.event_id, booking_data.quantity
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking_for_actor(db, booking_id, actor)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    status_data: BookingStatusUpdate,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a booking between Pending, Confirmed and Cancelled.

    Confirming commits the booking's tickets (400 if the event cannot cover
    them); leaving Confirmed releases them. A concurrent change to the same
    booking yields 409.
    """
    booking = await booking_service.set_booking_status(
        db, booking_id, status_data.booking_status, actor
    )
    # Readers refilling the cache must see the new count
    await db.commit()
    await invalidate_event_cache()
    return booking


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Generic update; only fields in the caller's role allow-list are applied."""
    return await booking_service.update_booking(
        db, booking_id, booking_data.model_dump(exclude_unset=True, exclude_none=True), actor
    )


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await booking_service.delete_booking(db, booking_id, actor)
    await db.commit()
    await invalidate_event_cache()
    return MessageResponse(message="Booking deleted successfully")
