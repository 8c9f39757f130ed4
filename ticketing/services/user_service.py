"""
User profile reads, allow-listed updates, and admin account management.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import NotFoundError
from ticketing.core.logging import get_logger
from ticketing.core.permissions import ensure_owner_or_admin, permitted_updates
from ticketing.models.booking import Booking, BookingStatus
from ticketing.models.user import User
from ticketing.services import inventory_service

logger = get_logger(__name__)


async def get_user_for_actor(db: AsyncSession, user_id: int, actor: User) -> User:
    ensure_owner_or_admin(actor, user_id)
    result = await db.execute(select(User).where(User.user_id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def update_user(db: AsyncSession, user_id: int, data: dict[str, Any], actor: User) -> User:
    user = await get_user_for_actor(db, user_id, actor)

    changes = permitted_updates("user", actor, data)
    dropped = sorted(set(data) - set(changes))
    if dropped:
        logger.info("user_update_fields_dropped", user_id=user_id, fields=dropped)

    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = datetime.now(timezone.utc)

    await db.flush()
    await db.refresh(user)
    return user


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.user_id))
    return list(result.scalars().all())


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Delete a user account. Their bookings and payments go with it through
    the foreign key cascade, so tickets held by Confirmed bookings are
    released first.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    result = await db.execute(
        select(Booking.event_id, Booking.quantity).where(
            Booking.user_id == user_id,
            Booking.booking_status == BookingStatus.CONFIRMED.value,
        )
    )
    held = result.all()
    for event_id, quantity in held:
        await inventory_service.release_tickets(db, event_id, quantity)

    await db.execute(delete(User).where(User.user_id == user_id))
    logger.info("user_deleted", user_id=user_id, released_bookings=len(held))
