"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own database (a throwaway SQLite file, or the database
named by TEST_DATABASE_URL) with tables created up front and dropped after.
Every request gets a fresh session that commits or rolls back like the
production dependency does.
"""

import json
import os

# Must be set before ticketing settings are first read
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("MPESA_CONSUMER_KEY", "test-consumer-key")
os.environ.setdefault("MPESA_CONSUMER_SECRET", "test-consumer-secret")
os.environ.setdefault("MPESA_PASSKEY", "test-passkey")
os.environ.setdefault("MPESA_CALLBACK_URL", "https://tickets.example.com/api/mpesa/callback")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import httpx
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from ticketing.main import app
from ticketing.db.base import Base
from ticketing.db.session import get_db
from ticketing.core.config import get_settings
from ticketing.core.security import create_access_token, hash_password
from ticketing.models.booking import Booking, BookingStatus
from ticketing.models.event import Event
from ticketing.models.payment import Payment, PaymentStatus
from ticketing.models.user import User, ROLE_ADMIN, ROLE_USER
from ticketing.services.mpesa_gateway import MpesaGateway, get_mpesa_gateway

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

TEST_PASSWORD = "testpassword123"


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables, yield a session factory, then drop tables for isolation."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(url, echo=False)

    if engine.dialect.name == "sqlite":
        @sa_event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging test data."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, role: str = ROLE_USER) -> User:
    user = User(
        first_name="Test",
        last_name=role.capitalize(),
        email=email,
        contact_phone="0712345678",
        hashed_password=hash_password(TEST_PASSWORD),
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.user_id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@example.com", role=ROLE_ADMIN)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return _headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


async def _create_event(
    db_session: AsyncSession,
    title: str,
    tickets_total: int,
    tickets_sold: int = 0,
    ticket_price: Decimal = Decimal("500.00"),
) -> Event:
    event = Event(
        title=title,
        description="A test event",
        category="Music",
        location="Test Venue",
        event_date=datetime.now(timezone.utc) + timedelta(days=30),
        ticket_price=ticket_price,
        tickets_total=tickets_total,
        tickets_sold=tickets_sold,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """An event with 100 tickets, none sold."""
    return await _create_event(db_session, "Test Concert", tickets_total=100)


@pytest_asyncio.fixture
async def nearly_full_event(db_session: AsyncSession) -> Event:
    """An event with 10 tickets, 8 already sold."""
    return await _create_event(db_session, "Almost Sold Out", tickets_total=10, tickets_sold=8)


@pytest_asyncio.fixture
async def pending_booking(db_session: AsyncSession, test_user: User, test_event: Event) -> Booking:
    booking = Booking(
        user_id=test_user.user_id,
        event_id=test_event.event_id,
        quantity=2,
        total_amount=test_event.ticket_price * 2,
        booking_status=BookingStatus.PENDING.value,
    )
    db_session.add(booking)
    await db_session.commit()
    await db_session.refresh(booking)
    return booking


@pytest_asyncio.fixture
async def pending_payment(db_session: AsyncSession, pending_booking: Booking) -> Payment:
    payment = Payment(
        booking_id=pending_booking.booking_id,
        amount=pending_booking.total_amount,
        payment_status=PaymentStatus.PENDING.value,
        payment_method="M-Pesa",
    )
    db_session.add(payment)
    await db_session.commit()
    await db_session.refresh(payment)
    return payment


class StubDaraja:
    """Stands in for the Daraja API behind httpx.MockTransport."""

    def __init__(self):
        self.stk_payloads: list[dict] = []
        # Awaited after the push is received and before Daraja answers it
        self.before_reply = None
        self.stk_status = 200
        self.stk_body = {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": "ws_CO_191220191020363925",
            "ResponseCode": "0",
            "ResponseDescription": "Success. Request accepted for processing",
            "CustomerMessage": "Success. Request accepted for processing",
        }

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/v1/generate":
            return httpx.Response(200, json={"access_token": "stub-token", "expires_in": "3599"})
        self.stk_payloads.append(json.loads(request.content))
        if self.before_reply is not None:
            await self.before_reply()
        return httpx.Response(self.stk_status, json=self.stk_body)


@pytest_asyncio.fixture
async def daraja(client: AsyncClient) -> StubDaraja:
    """Route the app's M-Pesa gateway to a stub Daraja for this test."""
    stub = StubDaraja()
    gateway = MpesaGateway(settings=get_settings(), transport=httpx.MockTransport(stub))
    app.dependency_overrides[get_mpesa_gateway] = lambda: gateway
    return stub
