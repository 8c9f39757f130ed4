"""
Payment model: at most one per booking.

`transaction_id` holds the gateway's CheckoutRequestID while the STK push is
Processing and is overwritten with the M-Pesa receipt number on completion.
"""

from enum import Enum

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    payment_id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer,
        ForeignKey("bookings.booking_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    amount = Column(Numeric(10, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    payment_method = Column(String(50), nullable=True, default="M-Pesa")
    transaction_id = Column(String(100), nullable=True, index=True)

    booking = relationship("Booking", back_populates="payment")

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('Pending', 'Processing', 'Completed', 'Failed')",
            name="check_payment_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.payment_id}, booking={self.booking_id}, status={self.payment_status})>"
