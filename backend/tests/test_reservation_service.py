"""
Tests for the reservation coordinator: seat/reservation consistency,
transactional updates, and concurrent writers.
"""

import asyncio
import random

import pytest

from seating.core.exceptions import InsufficientSeatsError, SeatingError, SeatUnavailableError
from seating.schemas.pack import PackKind
from seating.schemas.reservation import Placement
from seating.schemas.seat import SeatSource
from seating.services.interfaces.memory_store import MemoryBlobStore
from seating.services.reservation_service import ReservationService

from conftest import assert_consistent, seats, whole_table


class FlakyBlobStore(MemoryBlobStore):
    """Memory store whose commits can be made to fail."""

    fail_writes = False

    async def set_many(self, items):
        if self.fail_writes:
            raise ConnectionError("store unavailable")
        await super().set_many(items)


def keys(seat_list) -> set:
    return {seat.key for seat in seat_list}


@pytest.mark.asyncio
async def test_full_table_pack_books_first_empty_table(service: ReservationService):
    reservation = await service.create_for_pack("Karim", "0611", PackKind.FULL_TABLE)

    assert reservation.id == 1
    assert reservation.pack == "Pack table complète"
    assert reservation.seats == seats(*whole_table(1))
    assert reservation.price == 1700
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_duo_packs_take_neighbouring_seats(service: ReservationService):
    first = await service.create_for_pack("A", "1", PackKind.DUO)
    second = await service.create_for_pack("B", "2", PackKind.DUO)

    assert first.seats == seats((1, 1), (1, 2))
    assert second.seats == seats((1, 3), (1, 4))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_ticket_pack_books_one_free_seat(service: ReservationService):
    await service.create_for_pack("A", "1", PackKind.FULL_TABLE)
    ticket = await service.create_for_pack("B", "2", PackKind.TICKET)

    assert len(ticket.seats) == 1
    assert ticket.seats[0].table_id != 1
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_pack_shortfall_is_not_an_error_by_default(service: ReservationService):
    for table_id in range(1, 26):
        await service.book_seats(seats(*whole_table(table_id)[1:]), SeatSource.ADMIN)

    # one free seat per table, no empty table: the full-table pack gets ten singles
    reservation = await service.create_for_pack("Big", "1", PackKind.FULL_TABLE)
    assert len(reservation.seats) == 10

    for _ in range(15):
        await service.create_for_pack("X", "1", PackKind.TICKET)
    empty = await service.create_for_pack("Late", "1", PackKind.TICKET)

    assert empty.seats == []
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_strict_mode_rejects_short_allocation(blob_store, clock):
    service = ReservationService(blob_store, strict=True, rng=random.Random(1), clock=clock)
    for table_id in range(1, 26):
        await service.book_seats(seats(*whole_table(table_id)), SeatSource.ADMIN)
    await service.unbook_seats(seats((9, 9)))

    with pytest.raises(InsufficientSeatsError):
        await service.create_for_pack("A", "1", PackKind.DUO)

    assert await service.list_reservations() == []
    assert {s.seat.key for s in await service.get_seat_statuses()} == {
        (t, s) for t in range(1, 26) for s in range(1, 11)
    } - {(9, 9)}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "picked, pack, label",
    [
        (((2, 5),), PackKind.TICKET, "Ticket seul"),
        (((2, 5), (2, 6)), PackKind.DUO, "Pack duo"),
        (tuple(whole_table(4)), PackKind.FULL_TABLE, "Pack table complète"),
        (((2, 5), (7, 1), (9, 9)), PackKind.CUSTOM, "Sélection personnalisée"),
    ],
)
async def test_explicit_selection_derives_pack_from_count(service: ReservationService, picked, pack, label):
    reservation = await service.create_with_seats("Sara", "0622", seats(*picked))

    assert reservation.pack_kind == pack
    assert reservation.pack == label
    assert reservation.seats == seats(*picked)
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_explicit_selection_rejects_taken_seats(service: ReservationService):
    await service.create_with_seats("A", "1", seats((3, 3)))
    await service.toggle_admin_seat(3, 4)

    with pytest.raises(SeatUnavailableError) as exc_info:
        await service.create_with_seats("B", "2", seats((3, 3), (3, 4), (3, 5)))

    assert keys(exc_info.value.seats) == {(3, 3), (3, 4)}
    assert len(await service.list_reservations()) == 1
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_explicit_selection_rejects_repeated_seat(service: ReservationService):
    with pytest.raises(SeatingError):
        await service.create_with_seats("A", "1", seats((1, 1), (1, 1)))
    assert await service.get_seat_statuses() == []


@pytest.mark.asyncio
async def test_empty_selection_is_a_no_op(service: ReservationService):
    assert await service.create_with_seats("A", "1", []) is None
    assert await service.list_reservations() == []


@pytest.mark.asyncio
async def test_delete_frees_exactly_its_seats(service: ReservationService):
    keep = await service.create_with_seats("Keep", "1", seats((1, 1)))
    target = await service.create_with_seats("Go", "2", seats((2, 1), (2, 2)))
    await service.toggle_admin_seat(2, 3)

    assert await service.delete_reservation(target.id)

    remaining = {(s.seat.key, s.source) for s in await service.get_seat_statuses()}
    assert remaining == {((1, 1), SeatSource.USER), ((2, 3), SeatSource.ADMIN)}
    assert [r.id for r in await service.list_reservations()] == [keep.id]
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_delete_unknown_reservation(service: ReservationService):
    await service.create_with_seats("A", "1", seats((1, 1)))
    assert await service.delete_reservation(42) is False
    assert len(await service.get_seat_statuses()) == 1


@pytest.mark.asyncio
async def test_update_ticket_to_full_table(service: ReservationService):
    """The old seat is freed and ten seats on an empty table are booked."""
    ticket = await service.create_for_pack("Youssef", "0633", PackKind.TICKET)
    old_seat = ticket.seats[0]

    updated = await service.update_reservation(ticket.id, "Youssef", "0633", PackKind.FULL_TABLE)

    assert updated.id == ticket.id
    assert updated.pack_kind == PackKind.FULL_TABLE
    assert len(updated.seats) == 10
    assert len({seat.table_id for seat in updated.seats}) == 1
    assert updated.timestamp > ticket.timestamp

    booked = {s.seat.key for s in await service.get_seat_statuses()}
    assert booked == keys(updated.seats)
    if old_seat.table_id != updated.seats[0].table_id:
        assert old_seat.key not in booked
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_may_reuse_own_seats(service: ReservationService):
    """Allocation during an update sees the reservation's own seats as free."""
    table = await service.create_for_pack("A", "1", PackKind.FULL_TABLE)
    await service.create_for_pack("B", "2", PackKind.FULL_TABLE)

    updated = await service.update_reservation(table.id, "A", "1", PackKind.FULL_TABLE)

    assert updated.seats == seats(*whole_table(1))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_with_duo_placement_wraps_to_seat_one(service: ReservationService):
    reservation = await service.create_with_seats("A", "1", seats((5, 5)))

    updated = await service.update_reservation(
        reservation.id, "A", "1", PackKind.DUO, Placement(table_id=6, seat_id=10)
    )

    assert updated.seats == seats((6, 10), (6, 1))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_keeps_old_state_when_placed_seat_is_taken(service: ReservationService):
    reservation = await service.create_with_seats("A", "1", seats((5, 5)))
    await service.toggle_admin_seat(6, 2)

    with pytest.raises(SeatUnavailableError):
        await service.update_reservation(
            reservation.id, "A2", "1", PackKind.DUO, Placement(table_id=6, seat_id=1)
        )

    unchanged = await service.get_reservation(reservation.id)
    assert unchanged.name == "A"
    assert unchanged.seats == seats((5, 5))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_keeps_old_state_when_commit_fails(clock):
    store = FlakyBlobStore()
    service = ReservationService(store, rng=random.Random(5), clock=clock)
    reservation = await service.create_with_seats("A", "1", seats((1, 1)))
    before = store.snapshot()

    store.fail_writes = True
    with pytest.raises(ConnectionError):
        await service.update_reservation(reservation.id, "A", "1", PackKind.FULL_TABLE)

    assert store.snapshot() == before
    store.fail_writes = False
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_leaves_seat_handed_to_another_reservation(service: ReservationService):
    """A toggled-away seat rebooked by someone else stays theirs."""
    first = await service.create_with_seats("A", "1", seats((1, 1)))
    await service.toggle_admin_seat(1, 1)
    second = await service.create_with_seats("B", "2", seats((1, 1)))

    updated = await service.update_reservation(first.id, "A", "1", PackKind.TICKET)

    assert (1, 1) not in keys(updated.seats)
    assert (await service.get_reservation(second.id)).seats == seats((1, 1))
    sources = {s.seat.key: s.source for s in await service.get_seat_statuses()}
    assert sources[(1, 1)] == SeatSource.USER
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_does_not_free_admin_block_on_stale_seat(service: ReservationService):
    reservation = await service.create_with_seats("A", "1", seats((2, 2)))
    await service.toggle_admin_seat(2, 2)
    await service.toggle_admin_seat(2, 2)

    updated = await service.update_reservation(reservation.id, "A", "1", PackKind.TICKET)

    sources = {s.seat.key: s.source for s in await service.get_seat_statuses()}
    assert sources[(2, 2)] == SeatSource.ADMIN
    assert (2, 2) not in keys(updated.seats)
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_update_unknown_or_incomplete_is_a_no_op(service: ReservationService):
    reservation = await service.create_with_seats("A", "1", seats((1, 1)))

    assert await service.update_reservation(99, "B", "2", PackKind.DUO) is None
    assert await service.update_reservation(reservation.id, "", "2", PackKind.DUO) is None
    assert await service.update_reservation(reservation.id, "B", "", PackKind.DUO) is None

    assert (await service.get_reservation(reservation.id)).seats == seats((1, 1))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_full_table_placement_takes_remaining_free_seats(service: ReservationService):
    await service.toggle_admin_seat(8, 4)

    reservation = await service.create_for_pack("A", "1", PackKind.FULL_TABLE, Placement(table_id=8))

    assert keys(reservation.seats) == set(whole_table(8)) - {(8, 4)}
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_full_table_placement_on_full_table_is_rejected(service: ReservationService):
    await service.create_for_pack("A", "1", PackKind.FULL_TABLE)
    with pytest.raises(SeatUnavailableError):
        await service.create_for_pack("B", "1", PackKind.FULL_TABLE, Placement(table_id=1))


@pytest.mark.asyncio
async def test_ticket_placement_without_seat_uses_allocator(service: ReservationService):
    reservation = await service.create_for_pack("A", "1", PackKind.TICKET, Placement(table_id=3))
    assert len(reservation.seats) == 1
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_toggle_on_reserved_seat_is_reported_not_repaired(service: ReservationService):
    reservation = await service.create_with_seats("A", "1", seats((4, 4), (4, 5)))

    result = await service.toggle_admin_seat(4, 4)

    assert result.status is None
    assert result.released_reservation_id == reservation.id
    assert (await service.get_reservation(reservation.id)).seats == seats((4, 4), (4, 5))

    report = await service.check_consistency()
    assert not report.consistent
    assert report.unbooked_reservation_seats == {reservation.id: seats((4, 4))}
    assert report.orphaned_bookings == []


@pytest.mark.asyncio
async def test_toggle_free_seat_twice(service: ReservationService):
    first = await service.toggle_admin_seat(10, 10)
    second = await service.toggle_admin_seat(10, 10)

    assert first.status == SeatSource.ADMIN
    assert first.released_reservation_id is None
    assert second.status is None
    assert await service.get_seat_statuses() == []


@pytest.mark.asyncio
async def test_raw_user_booking_shows_up_as_orphan(service: ReservationService):
    await service.book_seats(seats((12, 1)), SeatSource.USER)

    report = await service.check_consistency()
    assert report.orphaned_bookings == seats((12, 1))
    assert not report.consistent


@pytest.mark.asyncio
async def test_assign_preview_does_not_book(service: ReservationService):
    preview = await service.assign_seats(10)

    assert preview == seats(*whole_table(1))
    assert await service.get_seat_statuses() == []


@pytest.mark.asyncio
async def test_concurrent_pack_requests_never_share_seats(service: ReservationService):
    results = await asyncio.gather(
        *[service.create_for_pack(f"guest{i}", "1", PackKind.DUO) for i in range(20)],
        *[service.create_for_pack(f"table{i}", "1", PackKind.FULL_TABLE) for i in range(5)],
        *[service.create_for_pack(f"solo{i}", "1", PackKind.TICKET) for i in range(30)],
    )

    all_seats = [seat.key for r in results for seat in r.seats]
    assert len(all_seats) == 20 * 2 + 5 * 10 + 30
    assert len(set(all_seats)) == len(all_seats)
    assert sorted(r.id for r in results) == list(range(1, 56))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_consistency_holds_across_mixed_operations(service: ReservationService):
    a = await service.create_for_pack("A", "1", PackKind.FULL_TABLE)
    b = await service.create_for_pack("B", "2", PackKind.DUO)
    c = await service.create_with_seats("C", "3", seats((20, 1), (20, 2), (20, 3)))
    await service.toggle_admin_seat(25, 1)

    await service.update_reservation(b.id, "B", "2", PackKind.TICKET)
    await assert_consistent(service)
    await service.delete_reservation(a.id)
    await assert_consistent(service)
    await service.update_reservation(c.id, "C", "3", PackKind.FULL_TABLE, Placement(table_id=20))
    await assert_consistent(service)

    assert (await service.check_consistency()).consistent


@pytest.mark.asyncio
async def test_available_tables_and_seats_treat_edited_reservation_as_free(service: ReservationService):
    table = await service.create_for_pack("A", "1", PackKind.FULL_TABLE)
    await service.create_with_seats("B", "2", seats((2, 1), (2, 3), (2, 5), (2, 7), (2, 9)))

    tables = await service.available_tables(PackKind.FULL_TABLE)
    assert 1 not in tables and 2 not in tables and 3 in tables
    assert 1 in await service.available_tables(PackKind.FULL_TABLE, editing_id=table.id)

    assert await service.available_seats(2, PackKind.TICKET) == [2, 4, 6, 8, 10]
    assert await service.available_seats(2, PackKind.DUO) == []
    assert await service.available_seats(1, PackKind.DUO, editing_id=table.id) == list(range(1, 11))


@pytest.mark.asyncio
async def test_seat_plan_reflects_sources(service: ReservationService):
    await service.create_with_seats("A", "1", seats((1, 1), (1, 2)))
    await service.toggle_admin_seat(1, 3)

    plan = await service.seat_plan()

    assert [len(row) for row in plan.rows] == [4, 3, 4, 3, 4, 3, 4]
    table_one = plan.rows[0][0]
    assert [(s.booked, s.admin_blocked) for s in table_one.seats[:4]] == [
        (True, False), (True, False), (False, True), (False, False)
    ]
    assert table_one.free_seats == 7
    assert (plan.free, plan.booked, plan.admin_blocked) == (247, 2, 1)


@pytest.mark.asyncio
async def test_corrupted_records_are_counted(clock):
    store = MemoryBlobStore({"seatStatuses": "{oops", "reservations": "null"})
    service = ReservationService(store, clock=clock)

    assert await service.get_seat_statuses() == []
    assert await service.list_reservations() == []
    assert service.reset_counts == {"seatStatuses": 1, "reservations": 1}

    await service.create_with_seats("A", "1", seats((1, 1)))
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_corrupted_record_is_reset_once_per_write(clock):
    store = MemoryBlobStore({"seatStatuses": "{oops"})
    service = ReservationService(store, rng=random.Random(2), clock=clock)

    await service.create_for_pack("A", "1", PackKind.DUO)
    assert service.reset_counts == {"seatStatuses": 1}

    # the commit replaced the corrupt blob, later reads are clean
    assert len(await service.get_seat_statuses()) == 2
    assert service.reset_counts == {"seatStatuses": 1}
    await assert_consistent(service)


@pytest.mark.asyncio
async def test_failed_write_keeps_corrupt_blob(clock):
    store = MemoryBlobStore({"seatStatuses": "{oops"})
    service = ReservationService(store, clock=clock)

    with pytest.raises(SeatingError):
        await service.create_with_seats("A", "1", seats((1, 1), (1, 1)))

    assert store.snapshot()["seatStatuses"] == "{oops"
