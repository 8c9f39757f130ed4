"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from ticketing.models.booking import BookingStatus


class BookingCreate(BaseModel):
    event_id: int
    quantity: int = Field(default=1, gt=0, le=100)


class BookingStatusUpdate(BaseModel):
    booking_status: BookingStatus


class BookingUpdate(BaseModel):
    total_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)

    model_config = {"extra": "allow"}


class BookingResponse(BaseModel):
    booking_id: int
    user_id: int
    event_id: int
    quantity: int
    total_amount: Decimal
    booking_status: BookingStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str
