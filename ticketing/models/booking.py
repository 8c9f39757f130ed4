"""
Booking model representing a user's reservation of N tickets for one event.

Key design decisions:
- A Pending booking holds no inventory; tickets are committed on confirmation
- `quantity`, `user_id` and `event_id` never change after creation
- CHECK constraint limits `booking_status` to the three lifecycle states
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    booking_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    booking_status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    user = relationship("User", back_populates="bookings")
    event = relationship("Event", back_populates="bookings")
    payment = relationship("Payment", back_populates="booking", uselist=False, passive_deletes=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_booking_quantity_positive"),
        CheckConstraint(
            "booking_status IN ('Pending', 'Confirmed', 'Cancelled')",
            name="check_booking_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.booking_id}, user={self.user_id}, event={self.event_id}, "
            f"status={self.booking_status})>"
        )
