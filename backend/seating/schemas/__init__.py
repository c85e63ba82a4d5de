from seating.schemas.pack import PackKind, PackInfo
from seating.schemas.seat import Seat, SeatSource, SeatStatusEntry
from seating.schemas.reservation import (
    Placement, Reservation, ReservationDraft, ReservationResponse,
    PackReservationCreate, SeatReservationCreate, ReservationUpdate,
)

__all__ = [
    "PackKind", "PackInfo",
    "Seat", "SeatSource", "SeatStatusEntry",
    "Placement", "Reservation", "ReservationDraft", "ReservationResponse",
    "PackReservationCreate", "SeatReservationCreate", "ReservationUpdate",
]
