"""
Pydantic schemas for payment records and the M-Pesa endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field

from ticketing.models.payment import PaymentStatus


class PaymentCreate(BaseModel):
    booking_id: int
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    payment_method: str = Field("M-Pesa", max_length=50)
    transaction_id: Optional[str] = Field(None, max_length=100)


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    transaction_id: Optional[str] = Field(None, max_length=100)
    payment_date: Optional[datetime] = None


class PaymentResponse(BaseModel):
    payment_id: int
    booking_id: int
    amount: Decimal
    payment_status: PaymentStatus
    payment_date: datetime
    payment_method: Optional[str]
    transaction_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StkPushRequest(BaseModel):
    # All optional so a missing field yields the endpoint's own 400 message
    phoneNumber: Optional[str] = None
    amount: Optional[Decimal] = None
    paymentId: Optional[int] = None


class StkPushResponse(BaseModel):
    success: bool
    data: dict[str, Any]


class CallbackAck(BaseModel):
    ResultCode: int = 0
    ResultDesc: str = "Accepted"
