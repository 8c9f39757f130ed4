from ticketing.schemas.user import UserCreate, UserLogin, UserUpdate, UserResponse, Token
from ticketing.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from ticketing.schemas.booking import (
    BookingCreate, BookingStatusUpdate, BookingUpdate, BookingResponse, MessageResponse,
)
from ticketing.schemas.payment import (
    PaymentCreate, PaymentUpdate, PaymentResponse, StkPushRequest, StkPushResponse, CallbackAck,
)

__all__ = [
    "UserCreate", "UserLogin", "UserUpdate", "UserResponse", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "BookingCreate", "BookingStatusUpdate", "BookingUpdate", "BookingResponse", "MessageResponse",
    "PaymentCreate", "PaymentUpdate", "PaymentResponse", "StkPushRequest", "StkPushResponse",
    "CallbackAck",
]
