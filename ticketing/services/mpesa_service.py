"""
STK push initiation and callback reconciliation against payment records.

Initiation marks the payment Processing with Daraja's CheckoutRequestID as a
provisional transaction_id. The callback later settles it: Completed with the
receipt number, or Failed. Neither step touches the booking; confirming a
booking stays an explicit call to the booking status endpoint.

Callbacks can arrive late, twice, or never, and even before the push call
itself returns. Applying the same success twice writes identical values. A
failure arriving after a completion is ignored, and so is the push
acceptance, so neither can erase a receipt.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import ConflictError
from ticketing.core.logging import get_logger
from ticketing.models.payment import Payment, PaymentStatus
from ticketing.models.user import User
from ticketing.services import payment_service
from ticketing.services.mpesa_callback import (
    CallbackMalformed,
    CallbackSuccess,
    parse_callback,
    parse_payment_id,
)
from ticketing.services.mpesa_gateway import MpesaGateway, validate_phone_number
from ticketing.services.state_machine import PaymentStateMachine

logger = get_logger(__name__)


async def authorize_push(
    db: AsyncSession,
    phone_number: str,
    payment_id: int,
    actor: User,
) -> str:
    """Check the phone, the caller's access and the payment state; return the canonical phone."""
    phone = validate_phone_number(phone_number)
    payment = await payment_service.get_payment_for_actor(db, payment_id, actor)

    if not PaymentStateMachine.can_transition(payment.payment_status, PaymentStatus.PROCESSING):
        raise ConflictError("Payment already completed")
    return phone


async def mark_processing(
    db: AsyncSession,
    payment_id: int,
    checkout_request_id: Optional[str],
) -> bool:
    """
    Record an accepted push. A callback may already have completed the
    payment while the push was in flight; that row is left as it is.
    """
    values = {
        "payment_status": PaymentStatus.PROCESSING.value,
        "updated_at": datetime.now(timezone.utc),
    }
    if checkout_request_id:
        values["transaction_id"] = checkout_request_id

    result = await db.execute(
        update(Payment)
        .where(
            Payment.payment_id == payment_id,
            Payment.payment_status != PaymentStatus.COMPLETED.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(
            "payment_completed_during_push",
            payment_id=payment_id,
            checkout_request_id=checkout_request_id,
        )
        return False

    logger.info(
        "payment_processing",
        payment_id=payment_id,
        checkout_request_id=checkout_request_id,
    )
    return True


async def initiate_payment(
    db: AsyncSession,
    gateway: MpesaGateway,
    phone_number: str,
    amount: Any,
    payment_id: int,
    actor: User,
) -> dict[str, Any]:
    phone = await authorize_push(db, phone_number, payment_id, actor)

    # No transaction stays open across the Daraja round trips
    await db.commit()

    data = await gateway.initiate_stk_push(phone, amount, payment_id)
    await mark_processing(db, payment_id, data.get("CheckoutRequestID"))
    return data


async def reconcile_callback(
    db: AsyncSession,
    raw_payment_id: Optional[str],
    payload: Any,
) -> str:
    """
    Apply one callback to its payment record and return an outcome label.

    Never raises for bad input; the caller still acknowledges the provider.
    """
    payment_id = parse_payment_id(raw_payment_id)
    if payment_id is None:
        logger.error("mpesa_callback_invalid_payment_id", payment_id=raw_payment_id)
        return "malformed"

    result = parse_callback(payload)
    if isinstance(result, CallbackMalformed):
        logger.error("mpesa_callback_malformed", payment_id=payment_id, reason=result.reason)
        return "malformed"

    payment = await db.get(Payment, payment_id)
    if payment is None:
        logger.error("mpesa_callback_unknown_payment", payment_id=payment_id)
        return "unknown_payment"

    now = datetime.now(timezone.utc)

    if isinstance(result, CallbackSuccess):
        if not result.receipt:
            logger.error(
                "mpesa_callback_missing_receipt",
                payment_id=payment_id,
                checkout_request_id=result.checkout_request_id,
            )
            return "missing_receipt"

        values = {
            "payment_status": PaymentStatus.COMPLETED.value,
            "transaction_id": result.receipt,
            "updated_at": now,
        }
        if result.transaction_date is not None:
            values["payment_date"] = result.transaction_date

        await db.execute(
            update(Payment)
            .where(Payment.payment_id == payment_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        logger.info(
            "payment_completed",
            payment_id=payment_id,
            receipt=result.receipt,
            amount=str(result.amount) if result.amount is not None else None,
            phone_number=result.phone_number,
        )
        return "completed"

    failed = await db.execute(
        update(Payment)
        .where(
            Payment.payment_id == payment_id,
            Payment.payment_status != PaymentStatus.COMPLETED.value,
        )
        .values(payment_status=PaymentStatus.FAILED.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if failed.rowcount == 0:
        logger.warning(
            "mpesa_callback_failure_after_completion",
            payment_id=payment_id,
            result_code=result.code,
        )
        return "ignored"

    logger.info(
        "payment_failed",
        payment_id=payment_id,
        result_code=result.code,
        description=result.description,
    )
    return "failed"
