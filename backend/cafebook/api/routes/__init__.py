"""API routes."""

from fastapi import APIRouter

from cafebook.api.routes import admin, bookings, cafes, email, owner, tournaments, uropay

api_router = APIRouter()

# Public browsing: /cafes, /cafes/{ref}/tickets, /cafes/{ref}/availability, /time-slots
api_router.include_router(cafes.router, tags=["cafes"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(tournaments.router, prefix="/tournaments", tags=["tournaments"])

# Payments and notifications
api_router.include_router(uropay.router, prefix="/uropay", tags=["payments", "uropay"])
api_router.include_router(email.router, prefix="/email", tags=["email"])

# Owner dashboard (session + owner role)
api_router.include_router(owner.router, prefix="/owner", tags=["owner"])

# Platform admin
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
