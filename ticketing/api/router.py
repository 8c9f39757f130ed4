"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from ticketing.api.routes import auth, users, events, bookings, payments, mpesa

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(events.router)
api_router.include_router(bookings.router)
api_router.include_router(payments.router)
api_router.include_router(mpesa.router)
