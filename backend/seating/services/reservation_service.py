"""
Reservation coordinator: keeps seat statuses and reservation records in step.

CONSISTENCY STRATEGY: Single Writer + Staged Commit
===================================================

Invariant:
  The seats listed by live reservations are pairwise disjoint and are
  exactly the seats whose status entry has source "user".

Problem:
  Every write is read-allocate-write over two records. Two interleaved
  requests can both see a seat as free and both book it, and a failure
  between "unbook old seats" and "book new seats" would leak inventory.

Solution:
  1. One asyncio.Lock serialises every mutating operation, so the snapshot
     an allocation is computed from is still current when it is booked.
  2. Each operation runs against a StagedBlobs buffer. Both records are
     published by one atomic set_many when the operation returns; an
     exception drops the buffer and the previous state stays intact.
  3. Updates compute the new seats from a snapshot without the
     reservation's own seats and validate explicit picks before anything
     is written.

  The lock is per process. Run a single worker per store.

Admin toggles are deliberately not reconciled: toggling a seat that belongs
to a reservation frees it while the reservation still lists it. The
coordinator logs the affected reservation and `check_consistency()` reports
the drift.
"""

import asyncio
import random
import time
from collections import Counter
from contextlib import asynccontextmanager
from typing import Callable, Iterable, Optional

from seating.core.config import Settings
from seating.core.exceptions import InsufficientSeatsError, SeatingError, SeatUnavailableError
from seating.core.layout import SEATS_PER_TABLE, TOTAL_SEATS, next_seat, seat_ids, table_ids, table_rows
from seating.core.logging import get_logger
from seating.core.metrics import (
    record_allocation,
    record_reservation_operation,
    record_seat_states,
    reservation_latency,
)
from seating.schemas.pack import PackKind
from seating.schemas.reservation import ConsistencyReport, Placement, Reservation, ReservationDraft
from seating.schemas.seat import (
    PlanSeat,
    PlanTable,
    Seat,
    SeatPlanResponse,
    SeatSource,
    SeatStatusEntry,
    ToggleResponse,
)
from seating.services.allocator import allocate, free_seats_of_table, occupied_keys
from seating.services.interfaces.blob_store import BlobStore
from seating.services.reservation_store import ReservationStore
from seating.services.seat_status_store import SeatStatusStore

logger = get_logger(__name__)

DEFAULT_RESERVATIONS_KEY = "reservations"
DEFAULT_SEAT_STATUSES_KEY = "seatStatuses"


def epoch_millis() -> int:
    return int(time.time() * 1000)


class ReservationService:

    def __init__(
        self,
        blobs: BlobStore,
        *,
        reservations_key: str = DEFAULT_RESERVATIONS_KEY,
        seat_statuses_key: str = DEFAULT_SEAT_STATUSES_KEY,
        strict: bool = False,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.blobs = blobs
        self.reservations_key = reservations_key
        self.seat_statuses_key = seat_statuses_key
        self.strict = strict
        self.rng = rng
        self.clock = clock
        self.reset_counts: Counter = Counter()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, blobs: BlobStore, settings: Settings) -> "ReservationService":
        rng = random.Random(settings.ALLOCATOR_SEED) if settings.ALLOCATOR_SEED is not None else None
        return cls(
            blobs,
            reservations_key=settings.RESERVATIONS_KEY,
            seat_statuses_key=settings.SEAT_STATUSES_KEY,
            strict=settings.STRICT_ALLOCATION,
            rng=rng,
        )

    # ------------------------------------------------------------------ #
    # Store wiring

    def _stores(self, blobs: BlobStore) -> tuple[SeatStatusStore, ReservationStore]:
        return (
            SeatStatusStore(blobs, self.seat_statuses_key, on_reset=self._record_reset),
            ReservationStore(blobs, self.reservations_key, on_reset=self._record_reset),
        )

    def _record_reset(self, record: str) -> None:
        self.reset_counts[record] += 1

    @property
    def seat_statuses(self) -> SeatStatusStore:
        return self._stores(self.blobs)[0]

    @property
    def reservations(self) -> ReservationStore:
        return self._stores(self.blobs)[1]

    @asynccontextmanager
    async def _unit_of_work(self, operation: str):
        """Hold the writer lock and stage all writes until the block exits cleanly."""
        async with self._lock:
            start_time = time.perf_counter()
            async with self.blobs.transaction() as staged:
                yield self._stores(staged)
            reservation_latency.labels(operation=operation).observe(time.perf_counter() - start_time)
            await self._refresh_seat_gauge()

    async def _refresh_seat_gauge(self) -> None:
        statuses = await self.seat_statuses.get_all()
        admin = sum(1 for status in statuses if status.source == SeatSource.ADMIN)
        user = len(statuses) - admin
        record_seat_states(free=TOTAL_SEATS - len(statuses), user=user, admin=admin)

    # ------------------------------------------------------------------ #
    # Reads

    async def list_reservations(self) -> list[Reservation]:
        return await self.reservations.list_all()

    async def get_reservation(self, reservation_id: int) -> Optional[Reservation]:
        return await self.reservations.get(reservation_id)

    async def get_seat_statuses(self) -> list[SeatStatusEntry]:
        return await self.seat_statuses.get_all()

    async def assign_seats(self, count: int) -> list[Seat]:
        """Preview what the allocator would pick right now. Nothing is booked."""
        statuses = await self.seat_statuses.get_all()
        return allocate(count, statuses, self.rng).seats

    # ------------------------------------------------------------------ #
    # Reservations

    async def create_for_pack(
        self,
        name: str,
        phone: str,
        pack: PackKind,
        placement: Optional[Placement] = None,
    ) -> Reservation:
        """
        Reserve a pack. Seats come from the allocator, or from the admin's
        placement when one is given.
        """
        async with self._unit_of_work("create_pack") as (seat_store, reservation_store):
            statuses = await seat_store.get_all()
            seats = self._resolve_seats(pack, placement, statuses)

            await seat_store.book(seats, SeatSource.USER)
            reservation = await reservation_store.add(self._draft(name, phone, pack, seats))

        record_reservation_operation("create", "ok")
        logger.info(
            "reservation_created",
            phone=phone,
            reservation_id=reservation.id,
            pack=pack.value,
            seats=[str(seat) for seat in seats],
            requested=pack.seat_count,
        )
        return reservation

    async def create_with_seats(self, name: str, phone: str, seats: list[Seat]) -> Optional[Reservation]:
        """
        Reserve seats picked on the plan. The pack follows from the count:
        1 ticket, 2 duo, 10 full table, anything else a custom selection.
        """
        if not seats:
            return None

        async with self._unit_of_work("create_seats") as (seat_store, reservation_store):
            statuses = await seat_store.get_all()
            self._ensure_free(seats, statuses)
            pack = PackKind.from_seat_count(len(seats))

            await seat_store.book(seats, SeatSource.USER)
            reservation = await reservation_store.add(self._draft(name, phone, pack, seats))

        record_reservation_operation("create", "ok")
        logger.info(
            "reservation_created",
            phone=phone,
            reservation_id=reservation.id,
            pack=reservation.pack_kind.value,
            seats=[str(seat) for seat in seats],
        )
        return reservation

    async def update_reservation(
        self,
        reservation_id: int,
        name: str,
        phone: str,
        pack: PackKind,
        placement: Optional[Placement] = None,
    ) -> Optional[Reservation]:
        """
        Replace a reservation's details and seats, keeping its id.

        Returns None without changing anything when the reservation does not
        exist or name/phone are empty. When explicit seats are taken the
        SeatUnavailableError leaves the old seats and record in place.
        """
        if not name or not phone:
            record_reservation_operation("update", "rejected")
            logger.info("reservation_update_skipped", reservation_id=reservation_id, reason="missing_fields")
            return None

        async with self._unit_of_work("update") as (seat_store, reservation_store):
            existing = await reservation_store.get(reservation_id)
            if existing is None:
                record_reservation_operation("update", "not_found")
                logger.info("reservation_update_skipped", reservation_id=reservation_id, reason="not_found")
                return None

            statuses = await seat_store.get_all()
            user_booked = {status.seat.key for status in statuses if status.source == SeatSource.USER}
            claimed = {
                seat.key
                for reservation in await reservation_store.list_all()
                if reservation.id != reservation_id
                for seat in reservation.seats
            }
            released = [seat for seat in existing.seats if seat.key in user_booked and seat.key not in claimed]
            stale = [seat for seat in existing.seats if seat not in released]
            if stale:
                # Toggled away since the reservation was made; leave them as they are.
                logger.warning(
                    "reservation_update_stale_seats",
                    reservation_id=reservation_id,
                    seats=[str(seat) for seat in stale],
                )

            own = {seat.key for seat in released}
            snapshot = [status for status in statuses if status.seat.key not in own]
            seats = self._resolve_seats(pack, placement, snapshot)

            await seat_store.unbook(released)
            await seat_store.book(seats, SeatSource.USER)
            await reservation_store.update(reservation_id, self._draft(name, phone, pack, seats))
            updated = await reservation_store.get(reservation_id)

        record_reservation_operation("update", "ok")
        logger.info(
            "reservation_updated",
            reservation_id=reservation_id,
            pack=pack.value,
            released=[str(seat) for seat in existing.seats],
            seats=[str(seat) for seat in seats],
        )
        return updated

    async def delete_reservation(self, reservation_id: int) -> bool:
        """Free the reservation's seats, then remove it. False when it does not exist."""
        async with self._unit_of_work("delete") as (seat_store, reservation_store):
            existing = await reservation_store.get(reservation_id)
            if existing is None:
                record_reservation_operation("delete", "not_found")
                return False

            await seat_store.unbook(existing.seats)
            await reservation_store.delete(reservation_id)

        record_reservation_operation("delete", "ok")
        logger.info(
            "reservation_deleted",
            reservation_id=reservation_id,
            seats_released=[str(seat) for seat in existing.seats],
        )
        return True

    # ------------------------------------------------------------------ #
    # Seat administration

    async def toggle_admin_seat(self, table_id: int, seat_id: int) -> ToggleResponse:
        """
        Block a free seat, or free a blocked or booked one.

        Reservations are not touched. Freeing a booked seat leaves its
        reservation listing a seat that is no longer booked.
        """
        seat = Seat.of(table_id, seat_id)
        owner_id = None

        async with self._unit_of_work("toggle") as (seat_store, reservation_store):
            previous = {status.seat.key: status.source for status in await seat_store.get_all()}
            status = await seat_store.toggle_admin(table_id, seat_id)
            if previous.get(seat.key) == SeatSource.USER:
                owner = await self._owner_of(seat, reservation_store)
                owner_id = owner.id if owner else None

        if owner_id is not None:
            logger.warning(
                "admin_toggle_released_reserved_seat",
                seat=str(seat),
                reservation_id=owner_id,
            )
        logger.info("seat_toggled", seat=str(seat), status=status.value if status else "free")
        return ToggleResponse(seat=seat, status=status, released_reservation_id=owner_id)

    async def book_seats(self, seats: Iterable[Seat], source: SeatSource = SeatSource.USER) -> list[Seat]:
        """Raw booking. Seats that already have an entry keep it."""
        seats = list(seats)
        async with self._unit_of_work("book") as (seat_store, _):
            added = await seat_store.book(seats, source)

        if source == SeatSource.USER and added:
            logger.warning("seats_booked_without_reservation", seats=[str(seat) for seat in added])
        logger.info("seats_booked", source=source.value, added=len(added), requested=len(seats))
        return added

    async def unbook_seats(self, seats: Iterable[Seat]) -> list[Seat]:
        """Raw unbooking. Free seats are ignored."""
        seats = list(seats)
        async with self._unit_of_work("unbook") as (seat_store, reservation_store):
            removed = await seat_store.unbook(seats)
            reservations = await reservation_store.list_all()

        removed_keys = {seat.key for seat in removed}
        for reservation in reservations:
            affected = [str(seat) for seat in reservation.seats if seat.key in removed_keys]
            if affected:
                logger.warning("seats_unbooked_under_reservation", reservation_id=reservation.id, seats=affected)
        logger.info("seats_unbooked", removed=len(removed), requested=len(seats))
        return removed

    # ------------------------------------------------------------------ #
    # Views

    async def seat_plan(self) -> SeatPlanResponse:
        statuses = {status.seat.key: status.source for status in await self.seat_statuses.get_all()}
        rows = []
        for row in table_rows():
            tables = []
            for table_id in row:
                seats = [
                    PlanSeat(
                        id=Seat.of(table_id, seat_id).global_id,
                        seat_id=seat_id,
                        booked=statuses.get((table_id, seat_id)) == SeatSource.USER,
                        admin_blocked=statuses.get((table_id, seat_id)) == SeatSource.ADMIN,
                    )
                    for seat_id in seat_ids()
                ]
                free = sum(1 for seat in seats if not seat.booked and not seat.admin_blocked)
                tables.append(PlanTable(id=table_id, seats=seats, free_seats=free))
            rows.append(tables)

        admin_blocked = sum(1 for source in statuses.values() if source == SeatSource.ADMIN)
        booked = len(statuses) - admin_blocked
        return SeatPlanResponse(
            rows=rows,
            free=TOTAL_SEATS - len(statuses),
            booked=booked,
            admin_blocked=admin_blocked,
        )

    async def available_tables(self, pack: PackKind, editing_id: Optional[int] = None) -> list[int]:
        """Tables with at least as many free seats as the pack needs."""
        occupied = await self._occupied_excluding(editing_id)
        return [
            table_id
            for table_id in table_ids()
            if len(free_seats_of_table(table_id, occupied)) >= pack.seat_count
        ]

    async def available_seats(
        self,
        table_id: int,
        pack: PackKind,
        editing_id: Optional[int] = None,
    ) -> list[int]:
        """
        Free seats on one table. For a duo only seats whose clockwise
        neighbour is also free qualify.
        """
        occupied = await self._occupied_excluding(editing_id)
        free = free_seats_of_table(table_id, occupied)
        if pack == PackKind.DUO:
            free_set = set(free)
            return [seat_id for seat_id in free if next_seat(seat_id) in free_set]
        return free

    async def check_consistency(self) -> ConsistencyReport:
        """Compare user bookings with the seats reservations claim."""
        statuses = await self.seat_statuses.get_all()
        reservations = await self.reservations.list_all()

        user_booked = {status.seat.key for status in statuses if status.source == SeatSource.USER}
        claimed: dict[tuple[int, int], int] = {}
        double_booked = []
        unbooked: dict[int, list[Seat]] = {}

        for reservation in reservations:
            for seat in reservation.seats:
                if seat.key in claimed:
                    double_booked.append(seat)
                claimed.setdefault(seat.key, reservation.id)
                if seat.key not in user_booked:
                    unbooked.setdefault(reservation.id, []).append(seat)

        orphaned = [Seat.of(*key) for key in sorted(user_booked - claimed.keys())]
        return ConsistencyReport(
            consistent=not (orphaned or unbooked or double_booked),
            orphaned_bookings=orphaned,
            unbooked_reservation_seats=unbooked,
            double_booked_seats=double_booked,
        )

    # ------------------------------------------------------------------ #
    # Helpers

    def _draft(self, name: str, phone: str, pack: PackKind, seats: list[Seat]) -> ReservationDraft:
        return ReservationDraft(
            name=name,
            phone=phone,
            pack=pack.label,
            pack_kind=pack,
            seats=seats,
            timestamp=self.clock(),
        )

    def _resolve_seats(
        self,
        pack: PackKind,
        placement: Optional[Placement],
        statuses: list[SeatStatusEntry],
    ) -> list[Seat]:
        """
        Seats for a pack against a snapshot.

        Without a placement (or without a seat for duo/ticket) the allocator
        decides. A full table placement takes every free seat of the table;
        a duo placement takes the seat and its clockwise neighbour.
        """
        if placement is None or (placement.seat_id is None and pack != PackKind.FULL_TABLE):
            allocation = allocate(pack.seat_count, statuses, self.rng)
            record_allocation(allocation.rule, allocation.requested, len(allocation.seats))
            logger.debug(
                "seats_assigned",
                pack=pack.value,
                rule=allocation.rule,
                seats=[str(seat) for seat in allocation.seats],
            )
            if not allocation.complete:
                logger.warning(
                    "allocation_short",
                    pack=pack.value,
                    requested=allocation.requested,
                    assigned=len(allocation.seats),
                )
                if self.strict:
                    raise InsufficientSeatsError(allocation.requested, len(allocation.seats))
            return allocation.seats

        occupied = occupied_keys(statuses)
        table_id = placement.table_id

        if pack == PackKind.FULL_TABLE:
            seats = [Seat.of(table_id, seat_id) for seat_id in free_seats_of_table(table_id, occupied)]
            if not seats:
                raise SeatUnavailableError(f"Table {table_id} has no free seats")
            if self.strict and len(seats) < SEATS_PER_TABLE:
                raise InsufficientSeatsError(SEATS_PER_TABLE, len(seats))
            return seats

        seats = [Seat.of(table_id, placement.seat_id)]
        if pack == PackKind.DUO:
            seats.append(Seat.of(table_id, next_seat(placement.seat_id)))
        self._ensure_free(seats, statuses)
        return seats

    @staticmethod
    def _ensure_free(seats: list[Seat], statuses: list[SeatStatusEntry]) -> None:
        keys = [seat.key for seat in seats]
        if len(set(keys)) != len(keys):
            raise SeatingError("A seat is listed more than once")

        occupied = occupied_keys(statuses)
        taken = [seat for seat in seats if seat.key in occupied]
        if taken:
            raise SeatUnavailableError(
                f"Seats not available: {', '.join(str(seat) for seat in taken)}",
                seats=taken,
            )

    async def _occupied_excluding(self, editing_id: Optional[int]) -> set[tuple[int, int]]:
        occupied = occupied_keys(await self.seat_statuses.get_all())
        if editing_id is not None:
            editing = await self.reservations.get(editing_id)
            if editing:
                occupied -= {seat.key for seat in editing.seats}
        return occupied

    @staticmethod
    async def _owner_of(seat: Seat, reservation_store: ReservationStore) -> Optional[Reservation]:
        for reservation in await reservation_store.list_all():
            if any(s.key == seat.key for s in reservation.seats):
                return reservation
        return None
