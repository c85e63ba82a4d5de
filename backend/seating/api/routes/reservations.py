"""
Reservation endpoints: pack reservations, seat-plan selections, admin edits.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from seating.api.deps import get_reservation_service
from seating.schemas.reservation import (
    PackReservationCreate,
    ReservationDeleteResponse,
    ReservationResponse,
    ReservationUpdate,
    SeatReservationCreate,
)
from seating.services.reservation_service import ReservationService

router = APIRouter(prefix="/reservations", tags=["Reservations"])


def _not_found(reservation_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Reservation {reservation_id} not found",
    )


@router.get("/", response_model=list[ReservationResponse])
async def list_reservations(service: ReservationService = Depends(get_reservation_service)):
    """All reservations in the order they were made."""
    reservations = await service.list_reservations()
    return [ReservationResponse.from_reservation(r) for r in reservations]


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
):
    reservation = await service.get_reservation(reservation_id)
    if reservation is None:
        raise _not_found(reservation_id)
    return ReservationResponse.from_reservation(reservation)


@router.post("/pack", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_pack_reservation(
    data: PackReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Reserve a pack. Seats are assigned automatically: a free table for the
    full-table pack, two neighbouring seats for a duo, a random seat
    otherwise. An admin may pass a placement to choose the table/seat.

    When the venue is nearly full fewer seats than the pack size may be
    assigned; compare `seats` with the pack before confirming.
    """
    reservation = await service.create_for_pack(data.name, data.phone, data.pack, data.placement)
    return ReservationResponse.from_reservation(reservation)


@router.post("/seats", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_seat_reservation(
    data: SeatReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
):
    """Reserve seats chosen on the plan. Returns 409 if any seat is taken."""
    reservation = await service.create_with_seats(data.name, data.phone, data.seats)
    return ReservationResponse.from_reservation(reservation)


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: int,
    data: ReservationUpdate,
    service: ReservationService = Depends(get_reservation_service),
):
    """Change a reservation's details and reseat it. The old seats are released."""
    reservation = await service.update_reservation(
        reservation_id, data.name, data.phone, data.pack, data.placement
    )
    if reservation is None:
        raise _not_found(reservation_id)
    return ReservationResponse.from_reservation(reservation)


@router.delete("/{reservation_id}", response_model=ReservationDeleteResponse)
async def delete_reservation(
    reservation_id: int,
    service: ReservationService = Depends(get_reservation_service),
):
    """Delete a reservation and free its seats."""
    if not await service.delete_reservation(reservation_id):
        raise _not_found(reservation_id)
    return ReservationDeleteResponse(
        message="Reservation deleted successfully",
        reservation_id=reservation_id,
    )
