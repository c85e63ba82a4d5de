"""
Reservation store: ordered list of reservation records.
"""

from typing import Optional

from pydantic import ValidationError

from seating.core.logging import get_logger
from seating.schemas.reservation import Reservation, ReservationDraft
from seating.services.record_store import JsonRecordStore

logger = get_logger(__name__)


class ReservationStore(JsonRecordStore):

    async def list_all(self) -> list[Reservation]:
        """All reservations in insertion order."""
        reservations: list[Reservation] = []
        seen_ids: set[int] = set()

        for item in await self._load_items():
            try:
                reservation = Reservation.model_validate(item)
            except ValidationError as e:
                logger.warning("reservation_dropped", record=self.key, errors=e.error_count())
                continue
            if reservation.id in seen_ids:
                logger.warning("reservation_duplicate_id", record=self.key, reservation_id=reservation.id)
                continue
            seen_ids.add(reservation.id)
            reservations.append(reservation)

        return reservations

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        for reservation in await self.list_all():
            if reservation.id == reservation_id:
                return reservation
        return None

    async def add(self, draft: ReservationDraft) -> Reservation:
        """Append a reservation with id = highest existing id + 1."""
        reservations = await self.list_all()
        new_id = max((r.id for r in reservations), default=0) + 1
        reservation = Reservation(id=new_id, **draft.model_dump())

        reservations.append(reservation)
        await self._save(reservations)
        return reservation

    async def update(self, reservation_id: int, draft: ReservationDraft) -> bool:
        """Replace a reservation in place, keeping its id and position."""
        reservations = await self.list_all()
        for index, reservation in enumerate(reservations):
            if reservation.id == reservation_id:
                reservations[index] = Reservation(id=reservation_id, **draft.model_dump())
                await self._save(reservations)
                return True
        return False

    async def delete(self, reservation_id: int) -> bool:
        """Remove a reservation. Its seats stay booked; freeing them is the caller's job."""
        reservations = await self.list_all()
        kept = [r for r in reservations if r.id != reservation_id]
        if len(kept) == len(reservations):
            return False

        await self._save(kept)
        return True

    async def _save(self, reservations: list[Reservation]) -> None:
        await self._save_items([r.model_dump(mode="json", by_alias=True) for r in reservations])
