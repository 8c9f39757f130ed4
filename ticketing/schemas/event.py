"""
Pydantic schemas for event-related request/response validation.

`tickets_sold` is read-only: it appears in responses but no request schema
accepts it.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    event_date: datetime
    ticket_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    tickets_total: int = Field(..., gt=0, le=1_000_000)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    event_date: Optional[datetime] = None
    ticket_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    tickets_total: Optional[int] = Field(None, gt=0, le=1_000_000)


class EventResponse(BaseModel):
    event_id: int
    title: str
    description: Optional[str]
    category: str
    location: Optional[str]
    event_date: datetime
    ticket_price: Decimal
    tickets_total: int
    tickets_sold: int
    tickets_available: int
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
