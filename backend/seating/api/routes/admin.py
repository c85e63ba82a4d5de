"""
Admin diagnostics.
"""

from fastapi import APIRouter, Depends

from seating.api.deps import get_reservation_service
from seating.schemas.reservation import ConsistencyReport
from seating.services.reservation_service import ReservationService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/consistency", response_model=ConsistencyReport)
async def check_consistency(service: ReservationService = Depends(get_reservation_service)):
    """
    Compare seat bookings with reservations. Drift is expected after an
    admin toggles a booked seat.
    """
    return await service.check_consistency()
