"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import admin, bookings, earnings, payouts

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Earnings
api_router.include_router(earnings.router, prefix="/earnings", tags=["Earnings"])

# Payouts
api_router.include_router(payouts.router, prefix="/payouts", tags=["Payouts"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
