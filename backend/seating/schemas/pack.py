"""
Seat packs offered on the reservation form.

The pack kind is carried explicitly on every reservation; labels are only
for display. `PackKind.from_label` exists for records written before the
kind was stored.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from seating.core.layout import SEATS_PER_TABLE

SINGLE_SEAT_PRICE = 150
CURRENCY = "DH"


class PackKind(str, Enum):
    TICKET = "ticket"
    DUO = "duo"
    FULL_TABLE = "table"
    CUSTOM = "custom"

    @property
    def seat_count(self) -> int:
        """Seats requested from the allocator. Custom packs fall back to one."""
        return _SEAT_COUNTS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def from_seat_count(cls, count: int) -> "PackKind":
        if count == 1:
            return cls.TICKET
        if count == 2:
            return cls.DUO
        if count == SEATS_PER_TABLE:
            return cls.FULL_TABLE
        return cls.CUSTOM

    @classmethod
    def match_label(cls, label: str) -> Optional["PackKind"]:
        """Pack named by a display label, or None when the label names no pack."""
        lowered = (label or "").lower()
        if lowered == _LABELS[cls.CUSTOM].lower():
            return cls.CUSTOM
        if "table" in lowered:
            return cls.FULL_TABLE
        if "duo" in lowered:
            return cls.DUO
        if "ticket" in lowered or "seul" in lowered:
            return cls.TICKET
        return None

    @classmethod
    def from_label(cls, label: str) -> "PackKind":
        """Like `match_label`, but anything unrecognised is a custom selection."""
        return cls.match_label(label) or cls.CUSTOM


_SEAT_COUNTS = {
    PackKind.TICKET: 1,
    PackKind.DUO: 2,
    PackKind.FULL_TABLE: SEATS_PER_TABLE,
    PackKind.CUSTOM: 1,
}

_LABELS = {
    PackKind.TICKET: "Ticket seul",
    PackKind.DUO: "Pack duo",
    PackKind.FULL_TABLE: "Pack table complète",
    PackKind.CUSTOM: "Sélection personnalisée",
}

_DESCRIPTIONS = {
    PackKind.TICKET: "Réservez une place individuelle.",
    PackKind.DUO: "Réservez deux places.",
    PackKind.FULL_TABLE: "Réservez une table entière de 10 places.",
    PackKind.CUSTOM: "Choisissez vos places sur le plan.",
}

_FIXED_PRICES = {
    PackKind.TICKET: SINGLE_SEAT_PRICE,
    PackKind.DUO: 320,
    PackKind.FULL_TABLE: 1700,
}


def pack_price(kind: PackKind, seat_count: int) -> int:
    """Fixed price per pack; custom selections are billed per seat."""
    if kind in _FIXED_PRICES:
        return _FIXED_PRICES[kind]
    return seat_count * SINGLE_SEAT_PRICE


class PackInfo(BaseModel):
    kind: PackKind
    label: str
    seat_count: int
    price: int
    currency: str = CURRENCY
    description: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


def pack_catalogue() -> list[PackInfo]:
    """Packs offered on the public form, custom selection excluded."""
    return [
        PackInfo(
            kind=kind,
            label=kind.label,
            seat_count=kind.seat_count,
            price=pack_price(kind, kind.seat_count),
            description=_DESCRIPTIONS[kind],
        )
        for kind in (PackKind.FULL_TABLE, PackKind.DUO, PackKind.TICKET)
    ]
