"""
Payment record endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import NotFoundError
from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.booking import MessageResponse
from ticketing.schemas.payment import PaymentCreate, PaymentResponse, PaymentUpdate
from ticketing.services import payment_service
from ticketing.core.security import get_current_user, require_admin

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.list_payments(db)


@router.get("/booking/{booking_id}", response_model=PaymentResponse)
async def get_payment_for_booking(
    booking_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.get_payment_by_booking(db, booking_id, actor)


@router.get("/transaction/{transaction_id}", response_model=PaymentResponse)
async def get_payment_by_transaction(
    transaction_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Look up a payment by M-Pesa receipt or CheckoutRequestID."""
    payment = await payment_service.find_by_transaction_id(db, transaction_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.get_payment_for_actor(db, payment_id, actor)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_data: PaymentCreate,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Open the Pending payment record for a booking.

    At most one payment exists per booking; a second attempt is 409.
    """
    return await payment_service.create_payment(db, payment_data, actor)


@router.put("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: int,
    payment_data: PaymentUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.update_payment(
        db, payment_id, payment_data.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.delete("/{payment_id}", response_model=MessageResponse)
async def delete_payment(
    payment_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await payment_service.delete_payment(db, payment_id)
    return MessageResponse(message="Payment deleted successfully")
