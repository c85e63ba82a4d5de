"""
Pydantic schemas for reservation records and request/response validation.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from seating.core.layout import SEATS_PER_TABLE, TABLE_COUNT
from seating.schemas.pack import PackKind, pack_price
from seating.schemas.seat import CAMEL_CONFIG, Seat


def _coerce_pack(value):
    """Accept a pack kind ("duo") or a display label ("Pack duo")."""
    if isinstance(value, PackKind):
        return value
    if isinstance(value, str):
        try:
            return PackKind(value.lower())
        except ValueError:
            pass
        kind = PackKind.match_label(value)
        if kind is None:
            raise ValueError(f"Unknown pack: {value!r}")
        return kind
    return value


class ReservationDraft(BaseModel):
    """A reservation record before the store assigns its id."""

    name: str
    phone: str
    pack: str
    pack_kind: PackKind
    seats: list[Seat] = Field(default_factory=list)
    timestamp: int

    model_config = CAMEL_CONFIG

    @model_validator(mode="before")
    @classmethod
    def infer_pack_kind(cls, data):
        # Records persisted before packKind existed only carry the label.
        if isinstance(data, dict) and "packKind" not in data and "pack_kind" not in data:
            data = {**data, "packKind": PackKind.from_label(data.get("pack", ""))}
        return data


class Reservation(ReservationDraft):
    id: int = Field(..., gt=0)

    @property
    def price(self) -> int:
        return pack_price(self.pack_kind, len(self.seats))

    @property
    def table_numbers(self) -> list[int]:
        """Distinct tables in seat order."""
        return list(dict.fromkeys(seat.table_id for seat in self.seats))


class Placement(BaseModel):
    """Table and optional seat picked on the admin form."""

    table_id: int = Field(..., ge=1, le=TABLE_COUNT)
    seat_id: Optional[int] = Field(None, ge=1, le=SEATS_PER_TABLE)

    model_config = CAMEL_CONFIG


class PackReservationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    pack: PackKind
    placement: Optional[Placement] = None

    model_config = CAMEL_CONFIG

    @field_validator("pack", mode="before")
    @classmethod
    def accept_pack_label(cls, value):
        return _coerce_pack(value)


class SeatReservationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    seats: list[Seat] = Field(..., min_length=1, max_length=TABLE_COUNT * SEATS_PER_TABLE)

    model_config = CAMEL_CONFIG


class ReservationUpdate(PackReservationCreate):
    pass


class ReservationResponse(BaseModel):
    id: int
    name: str
    phone: str
    pack: str
    pack_kind: PackKind
    seats: list[Seat]
    timestamp: int
    price: int
    tables: list[int]

    model_config = CAMEL_CONFIG

    @classmethod
    def from_reservation(cls, reservation: Reservation) -> "ReservationResponse":
        return cls(
            **reservation.model_dump(),
            price=reservation.price,
            tables=reservation.table_numbers,
        )


class ReservationDeleteResponse(BaseModel):
    message: str
    reservation_id: int

    model_config = CAMEL_CONFIG


class ConsistencyReport(BaseModel):
    consistent: bool
    orphaned_bookings: list[Seat]
    unbooked_reservation_seats: dict[int, list[Seat]]
    double_booked_seats: list[Seat]

    model_config = CAMEL_CONFIG
