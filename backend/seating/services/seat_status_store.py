"""
Seat status store - the ground truth of seat availability.

One entry per unavailable seat: `{"tableId", "seatId", "source"}` where
source is "user" (booked through a reservation) or "admin" (blocked).
A seat without an entry is free.
"""

from typing import Iterable, Optional

from pydantic import ValidationError

from seating.core.logging import get_logger
from seating.schemas.seat import Seat, SeatSource, SeatStatusEntry
from seating.services.record_store import JsonRecordStore

logger = get_logger(__name__)


class SeatStatusStore(JsonRecordStore):

    async def get_all(self) -> list[SeatStatusEntry]:
        entries: list[SeatStatusEntry] = []
        seen: set[tuple[int, int]] = set()

        for item in await self._load_items():
            try:
                entry = SeatStatusEntry.model_validate(item)
            except ValidationError as e:
                logger.warning("seat_status_dropped", record=self.key, item=item, errors=e.error_count())
                continue
            if entry.seat.key in seen:
                logger.warning("seat_status_duplicate", record=self.key, seat=str(entry.seat))
                continue
            seen.add(entry.seat.key)
            entries.append(entry)

        return entries

    async def book(self, seats: Iterable[Seat], source: SeatSource = SeatSource.USER) -> list[Seat]:
        """
        Add an entry for every seat that has none. Existing entries of
        either source are left as they are.

        Returns the seats that were actually added.
        """
        entries = await self.get_all()
        taken = {entry.seat.key for entry in entries}
        added = []

        for seat in seats:
            if seat.key in taken:
                continue
            entries.append(SeatStatusEntry(table_id=seat.table_id, seat_id=seat.seat_id, source=source))
            taken.add(seat.key)
            added.append(seat)

        await self._save(entries)
        return added

    async def unbook(self, seats: Iterable[Seat]) -> list[Seat]:
        """Remove entries for the given seats. Free seats are ignored."""
        targets = {seat.key for seat in seats}
        entries = await self.get_all()
        kept = [entry for entry in entries if entry.seat.key not in targets]
        removed = [entry.seat for entry in entries if entry.seat.key in targets]

        await self._save(kept)
        return removed

    async def toggle_admin(self, table_id: int, seat_id: int) -> Optional[SeatSource]:
        """
        Free the seat if it has an entry of any source, otherwise block it.

        A user-booked seat is freed too; its reservation keeps listing it.
        Returns the seat's new status, None meaning free.
        """
        seat = Seat.of(table_id, seat_id)
        entries = await self.get_all()
        kept = [entry for entry in entries if entry.seat.key != seat.key]

        if len(kept) < len(entries):
            await self._save(kept)
            return None

        kept.append(SeatStatusEntry(table_id=table_id, seat_id=seat_id, source=SeatSource.ADMIN))
        await self._save(kept)
        return SeatSource.ADMIN

    async def _save(self, entries: list[SeatStatusEntry]) -> None:
        await self._save_items([entry.model_dump(mode="json", by_alias=True) for entry in entries])
