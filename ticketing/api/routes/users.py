"""
User profile endpoints, plus admin-only listing and deletion.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.booking import MessageResponse
from ticketing.schemas.user import UserResponse, UserUpdate
from ticketing.services.cache_service import invalidate_event_cache
from ticketing.services.user_service import delete_user, get_user_for_actor, list_users, update_user
from ticketing.core.security import get_current_user, require_admin

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserResponse])
async def list_users_endpoint(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_users(db)


@router.get("/me", response_model=UserResponse)
async def read_current_user(user: User = Depends(get_current_user)):
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_endpoint(
    user_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_user_for_actor(db, user_id, actor)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user_endpoint(
    user_id: int,
    user_data: UserUpdate,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a profile. Fields outside the caller's role allow-list are
    silently dropped; only admins may change `role`.
    """
    return await update_user(
        db, user_id, user_data.model_dump(exclude_unset=True, exclude_none=True), actor
    )


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user_endpoint(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an account with its bookings and payments. Admin only."""
    await delete_user(db, user_id)
    await db.commit()
    await invalidate_event_cache()
    return MessageResponse(message="User deleted successfully")
