"""
Pydantic schemas for seats and seat statuses.

Field aliases are camelCase so the same models read and write the persisted
records (`{"tableId": 3, "seatId": 9, "source": "user"}`) and the API.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from seating.core.layout import SEATS_PER_TABLE, TABLE_COUNT, global_seat_id, split_global_seat_id

CAMEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}


class SeatSource(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Seat(BaseModel):
    table_id: int = Field(..., ge=1, le=TABLE_COUNT)
    seat_id: int = Field(..., ge=1, le=SEATS_PER_TABLE)

    model_config = {**CAMEL_CONFIG, "frozen": True}

    @property
    def global_id(self) -> int:
        return global_seat_id(self.table_id, self.seat_id)

    @property
    def key(self) -> tuple[int, int]:
        return self.table_id, self.seat_id

    @classmethod
    def of(cls, table_id: int, seat_id: int) -> "Seat":
        return cls(table_id=table_id, seat_id=seat_id)

    @classmethod
    def from_global_id(cls, global_id: int) -> "Seat":
        return cls.of(*split_global_seat_id(global_id))

    def __str__(self) -> str:
        return f"T{self.table_id}-S{self.seat_id}"


class SeatStatusEntry(BaseModel):
    table_id: int = Field(..., ge=1, le=TABLE_COUNT)
    seat_id: int = Field(..., ge=1, le=SEATS_PER_TABLE)
    source: SeatSource = SeatSource.USER

    model_config = CAMEL_CONFIG

    @field_validator("source", mode="before")
    @classmethod
    def legacy_source(cls, value):
        # Older records carry no source, or free text; only "admin" means a block.
        return SeatSource.ADMIN if value in ("admin", SeatSource.ADMIN) else SeatSource.USER

    @property
    def seat(self) -> Seat:
        return Seat.of(self.table_id, self.seat_id)


class SeatListRequest(BaseModel):
    seats: list[Seat] = Field(..., min_length=1)

    model_config = CAMEL_CONFIG


class BookSeatsRequest(SeatListRequest):
    source: SeatSource = SeatSource.USER


class PlanSeat(BaseModel):
    id: int
    seat_id: int
    booked: bool
    admin_blocked: bool

    model_config = CAMEL_CONFIG


class PlanTable(BaseModel):
    id: int
    seats: list[PlanSeat]
    free_seats: int

    model_config = CAMEL_CONFIG


class SeatPlanResponse(BaseModel):
    rows: list[list[PlanTable]]
    free: int
    booked: int
    admin_blocked: int

    model_config = CAMEL_CONFIG


class ToggleResponse(BaseModel):
    seat: Seat
    status: Optional[SeatSource]
    released_reservation_id: Optional[int] = None

    model_config = CAMEL_CONFIG


class AssignmentResponse(BaseModel):
    requested: int
    seats: list[Seat]

    model_config = CAMEL_CONFIG


class LayoutResponse(BaseModel):
    table_count: int
    seats_per_table: int
    rows: list[list[int]]

    model_config = CAMEL_CONFIG
