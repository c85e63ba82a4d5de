"""
Request dependencies.
"""

from fastapi import Request

from seating.services.reservation_service import ReservationService


def get_reservation_service(request: Request) -> ReservationService:
    """The coordinator built at startup; one instance owns the store."""
    return request.app.state.reservation_service
