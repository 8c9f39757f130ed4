"""
Payment record store.

One payment per booking is enforced by the UNIQUE constraint on
payments.booking_id; the resulting IntegrityError becomes a 409.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import ConflictError, NotFoundError
from ticketing.core.logging import get_logger
from ticketing.core.permissions import ensure_owner_or_admin
from ticketing.models.booking import Booking
from ticketing.models.payment import Payment, PaymentStatus
from ticketing.models.user import User
from ticketing.schemas.payment import PaymentCreate
from ticketing.services import booking_service
from ticketing.services.state_machine import PaymentStateMachine

logger = get_logger(__name__)


async def get_payment(db: AsyncSession, payment_id: int) -> Payment:
    result = await db.execute(
        select(Payment)
        .where(Payment.payment_id == payment_id)
        .execution_options(populate_existing=True)
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


async def get_payment_owner_id(db: AsyncSession, payment: Payment) -> int:
    result = await db.execute(
        select(Booking.user_id).where(Booking.booking_id == payment.booking_id)
    )
    owner_id = result.scalar_one_or_none()
    if owner_id is None:
        raise NotFoundError("Booking not found")
    return owner_id


async def get_payment_for_actor(db: AsyncSession, payment_id: int, actor: User) -> Payment:
    payment = await get_payment(db, payment_id)
    ensure_owner_or_admin(actor, await get_payment_owner_id(db, payment))
    return payment


async def find_by_booking(db: AsyncSession, booking_id: int) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.booking_id == booking_id))
    return result.scalar_one_or_none()


async def get_payment_by_booking(db: AsyncSession, booking_id: int, actor: User) -> Payment:
    await booking_service.get_booking_for_actor(db, booking_id, actor)
    payment = await find_by_booking(db, booking_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment


async def find_by_transaction_id(db: AsyncSession, transaction_id: str) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.transaction_id == transaction_id))
    return result.scalar_one_or_none()


async def list_payments(db: AsyncSession) -> list[Payment]:
    result = await db.execute(select(Payment).order_by(Payment.payment_id))
    return list(result.scalars().all())


async def create_payment(db: AsyncSession, data: PaymentCreate, actor: User) -> Payment:
    booking = await booking_service.get_booking_for_actor(db, data.booking_id, actor)

    payment = Payment(
        booking_id=booking.booking_id,
        amount=data.amount if data.amount is not None else booking.total_amount,
        payment_status=PaymentStatus.PENDING.value,
        payment_method=data.payment_method,
        transaction_id=data.transaction_id,
        payment_date=datetime.now(timezone.utc),
    )

    # The request session rolls back on the ConflictError raised below
    db.add(payment)
    try:
        await db.flush()
    except IntegrityError:
        logger.warning("payment_create_conflict", booking_id=booking.booking_id)
        raise ConflictError("Payment already exists for this booking")

    await db.refresh(payment)
    logger.info(
        "payment_created",
        payment_id=payment.payment_id,
        booking_id=payment.booking_id,
        amount=str(payment.amount),
    )
    return payment


async def update_payment(db: AsyncSession, payment_id: int, data: dict[str, Any]) -> Payment:
    payment = await get_payment(db, payment_id)

    new_status = data.get("payment_status")
    if new_status is not None and not PaymentStateMachine.can_transition(
        payment.payment_status, new_status
    ):
        raise ConflictError(
            f"Cannot change payment from {payment.payment_status} to {PaymentStatus(new_status).value}"
        )

    for field, value in data.items():
        if isinstance(value, PaymentStatus):
            value = value.value
        setattr(payment, field, value)
    payment.updated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(payment)
    logger.info("payment_updated", payment_id=payment_id, fields=sorted(data))
    return payment


async def delete_payment(db: AsyncSession, payment_id: int) -> None:
    payment = await get_payment(db, payment_id)
    await db.delete(payment)
    await db.flush()
    logger.info("payment_deleted", payment_id=payment_id)
