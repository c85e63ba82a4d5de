"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from seating.api.routes import admin, catalog, reservations, seats

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(reservations.router)
api_router.include_router(seats.router)
api_router.include_router(catalog.router)
api_router.include_router(admin.router)
