"""
Event model with ticket inventory tracking.

Key design decisions:
- `tickets_sold` only moves through the inventory ledger, which commits
  tickets with a conditional UPDATE instead of read-modify-write
- CHECK constraints keep 0 <= tickets_sold <= tickets_total even if a buggy
  write slips past the application
- Index on `event_date` for upcoming-event listings
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Index, CheckConstraint
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    event_id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False)
    location = Column(String(255), nullable=True)
    event_date = Column(DateTime(timezone=True), nullable=False)
    ticket_price = Column(Numeric(10, 2), nullable=False)
    tickets_total = Column(Integer, nullable=False)
    tickets_sold = Column(Integer, nullable=False, default=0)

    bookings = relationship("Booking", back_populates="event", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("tickets_total > 0", name="check_tickets_total_positive"),
        CheckConstraint("tickets_sold >= 0", name="check_tickets_sold_non_negative"),
        CheckConstraint("tickets_sold <= tickets_total", name="check_tickets_sold_lte_total"),
        Index("ix_events_event_date", "event_date"),
    )

    @property
    def tickets_available(self) -> int:
        return self.tickets_total - self.tickets_sold

    def __repr__(self) -> str:
        return f"<Event(id={self.event_id}, title={self.title}, sold={self.tickets_sold}/{self.tickets_total})>"
