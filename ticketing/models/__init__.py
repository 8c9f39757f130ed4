from ticketing.models.user import User
from ticketing.models.event import Event
from ticketing.models.booking import Booking, BookingStatus
from ticketing.models.payment import Payment, PaymentStatus

__all__ = ["User", "Event", "Booking", "BookingStatus", "Payment", "PaymentStatus"]
