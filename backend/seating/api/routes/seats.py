"""
Seat endpoints: occupancy, allocation preview, and admin blocking.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from seating.api.deps import get_reservation_service
from seating.core.layout import SEATS_PER_TABLE, TABLE_COUNT, TOTAL_SEATS
from seating.schemas.pack import PackKind
from seating.schemas.seat import (
    AssignmentResponse,
    BookSeatsRequest,
    Seat,
    SeatListRequest,
    SeatPlanResponse,
    SeatStatusEntry,
    ToggleResponse,
)
from seating.services.reservation_service import ReservationService

router = APIRouter(prefix="/seats", tags=["Seats"])


@router.get("/statuses", response_model=list[SeatStatusEntry])
async def get_seat_statuses(service: ReservationService = Depends(get_reservation_service)):
    """Every seat that is not free, with who made it unavailable."""
    return await service.get_seat_statuses()


@router.get("/plan", response_model=SeatPlanResponse)
async def get_seat_plan(service: ReservationService = Depends(get_reservation_service)):
    """Tables grouped into plan rows with per-seat booked/blocked flags."""
    return await service.seat_plan()


@router.get("/assignment", response_model=AssignmentResponse)
async def preview_assignment(
    count: int = Query(..., ge=1, le=TOTAL_SEATS),
    service: ReservationService = Depends(get_reservation_service),
):
    """Seats the allocator would pick now. Nothing is booked."""
    seats = await service.assign_seats(count)
    return AssignmentResponse(requested=count, seats=seats)


@router.get("/available-tables", response_model=list[int])
async def available_tables(
    pack: PackKind = Query(...),
    editing_id: Optional[int] = Query(None, alias="editingId"),
    service: ReservationService = Depends(get_reservation_service),
):
    """Tables with enough free seats for the pack; an edited reservation's seats count as free."""
    return await service.available_tables(pack, editing_id)


@router.get("/tables/{table_id}/available", response_model=list[int])
async def available_seats(
    table_id: int = Path(..., ge=1, le=TABLE_COUNT),
    pack: PackKind = Query(PackKind.TICKET),
    editing_id: Optional[int] = Query(None, alias="editingId"),
    service: ReservationService = Depends(get_reservation_service),
):
    return await service.available_seats(table_id, pack, editing_id)


@router.post("/book", response_model=list[Seat])
async def book_seats(
    data: BookSeatsRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Book seats directly, as "user" unless `source` says "admin". Returns
    only the seats that were free before the call. User seats booked here
    belong to no reservation until one lists them.
    """
    return await service.book_seats(data.seats, data.source)


@router.post("/unbook", response_model=list[Seat])
async def unbook_seats(
    data: SeatListRequest,
    service: ReservationService = Depends(get_reservation_service),
):
    """Free seats directly. Returns the seats that had an entry."""
    return await service.unbook_seats(data.seats)


@router.post("/{table_id}/{seat_id}/toggle", response_model=ToggleResponse)
async def toggle_admin_seat(
    table_id: int = Path(..., ge=1, le=TABLE_COUNT),
    seat_id: int = Path(..., ge=1, le=SEATS_PER_TABLE),
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Block a free seat, or free a blocked one.

    A seat booked by a reservation is freed as well, and the reservation
    keeps listing it; `releasedReservationId` names that reservation.
    """
    return await service.toggle_admin_seat(table_id, seat_id)
