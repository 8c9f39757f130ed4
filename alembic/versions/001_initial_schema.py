"""Initial schema: users, events, bookings, payments with constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(150), nullable=False),
        sa.Column("contact_phone", sa.String(20), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        *_timestamps(),
        sa.CheckConstraint("role IN ('user', 'admin')", name="check_user_role"),
    )
    op.create_index("ix_users_user_id", "users", ["user_id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "events",
        sa.Column("event_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(150), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ticket_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("tickets_total", sa.Integer(), nullable=False),
        sa.Column("tickets_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("tickets_total > 0", name="check_tickets_total_positive"),
        sa.CheckConstraint("tickets_sold >= 0", name="check_tickets_sold_non_negative"),
        sa.CheckConstraint("tickets_sold <= tickets_total", name="check_tickets_sold_lte_total"),
    )
    op.create_index("ix_events_event_id", "events", ["event_id"])
    # Upcoming-event listings filter and sort on event_date
    op.create_index("ix_events_event_date", "events", ["event_date"])

    op.create_table(
        "bookings",
        sa.Column("booking_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("booking_status", sa.String(20), nullable=False, server_default="Pending"),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="check_booking_quantity_positive"),
        sa.CheckConstraint(
            "booking_status IN ('Pending', 'Confirmed', 'Cancelled')",
            name="check_booking_status",
        ),
    )
    op.create_index("ix_bookings_booking_id", "bookings", ["booking_id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_event_id", "bookings", ["event_id"])

    op.create_table(
        "payments",
        sa.Column("payment_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "booking_id",
            sa.Integer(),
            sa.ForeignKey("bookings.booking_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("payment_method", sa.String(50), nullable=True, server_default="M-Pesa"),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        *_timestamps(),
        # One payment per booking; duplicate inserts surface as 409
        sa.UniqueConstraint("booking_id", name="uq_payments_booking_id"),
        sa.CheckConstraint(
            "payment_status IN ('Pending', 'Processing', 'Completed', 'Failed')",
            name="check_payment_status",
        ),
    )
    op.create_index("ix_payments_payment_id", "payments", ["payment_id"])
    # Reconciliation and support lookups by receipt / CheckoutRequestID
    op.create_index("ix_payments_transaction_id", "payments", ["transaction_id"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("events")
    op.drop_table("users")
