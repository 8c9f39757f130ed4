"""
M-Pesa endpoints: STK push initiation and the Daraja result callback.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import ValidationError
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_callback
from ticketing.core.security import get_current_user
from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.payment import CallbackAck, StkPushRequest, StkPushResponse
from ticketing.services.mpesa_gateway import MpesaGateway, get_mpesa_gateway
from ticketing.services.mpesa_service import initiate_payment, reconcile_callback

logger = get_logger(__name__)
router = APIRouter(prefix="/api/mpesa", tags=["M-Pesa"])


@router.post("/stkpush", response_model=StkPushResponse)
async def stk_push(
    body: StkPushRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: MpesaGateway = Depends(get_mpesa_gateway),
):
    """
    Prompt the payer's phone for an M-Pesa payment against an existing
    payment record. The record moves to Processing; the final result arrives
    on the callback.
    """
    if not body.phoneNumber or body.amount is None or body.paymentId is None:
        raise ValidationError("Missing required fields")

    data = await initiate_payment(
        db, gateway, body.phoneNumber, body.amount, body.paymentId, actor
    )
    return StkPushResponse(success=True, data=data)


@router.post("/callback", response_model=CallbackAck)
async def mpesa_callback(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Daraja result notification. Always acknowledged with 200 so Daraja does
    not keep redelivering; problems are logged and counted instead.
    """
    raw_payment_id = request.query_params.get("payment_id")

    try:
        payload = await request.json()
    except ValueError:
        logger.error("mpesa_callback_invalid_json", payment_id=raw_payment_id)
        record_callback("malformed")
        return CallbackAck()

    try:
        outcome = await reconcile_callback(db, raw_payment_id, payload)
        await db.commit()
    except Exception:
        logger.exception("mpesa_callback_processing_error", payment_id=raw_payment_id)
        await db.rollback()
        outcome = "error"

    record_callback(outcome)
    return CallbackAck()
