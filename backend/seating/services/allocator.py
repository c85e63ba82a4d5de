"""
Seat allocation for pack reservations.

ALLOCATION RULES (first match wins)
===================================

1. Full table (10 seats): the lowest-numbered table with no status entry at
   all. Blocked seats disqualify a table just like booked ones.
2. Duo (2 seats): the lowest table holding two free neighbours. Within a
   table the lowest free seat whose circular successor is free wins, so
   seats 10 and 1 count as neighbours.
3. Fallback (singles, or when 1/2 found nothing): draw seats uniformly at
   random from the free pool until `count` are picked or the pool is empty.

The allocator only reads the snapshot it is given. Callers book the result
before the next allocation, otherwise the same seats come back.

A shortfall is not an error: fewer seats than requested may be returned,
and callers compare lengths.
"""

import random
from dataclasses import dataclass, field
from typing import Iterable, Optional

from seating.core.layout import SEATS_PER_TABLE, next_seat, seat_ids, table_ids
from seating.schemas.seat import Seat, SeatStatusEntry

DUO_SIZE = 2


@dataclass
class Allocation:
    requested: int
    rule: str  # full_table, duo, random, none
    seats: list[Seat] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return len(self.seats) >= self.requested


def occupied_keys(statuses: Iterable[SeatStatusEntry]) -> set[tuple[int, int]]:
    return {(status.table_id, status.seat_id) for status in statuses}


def free_seats_of_table(table_id: int, occupied: set[tuple[int, int]]) -> list[int]:
    return [seat_id for seat_id in seat_ids() if (table_id, seat_id) not in occupied]


def allocate(
    count: int,
    statuses: Iterable[SeatStatusEntry],
    rng: Optional[random.Random] = None,
) -> Allocation:
    if count <= 0:
        return Allocation(requested=count, rule="none")

    occupied = occupied_keys(statuses)

    if count == SEATS_PER_TABLE:
        seats = _first_empty_table(occupied)
        if seats:
            return Allocation(requested=count, rule="full_table", seats=seats)

    if count == DUO_SIZE:
        seats = _first_adjacent_pair(occupied)
        if seats:
            return Allocation(requested=count, rule="duo", seats=seats)

    return Allocation(requested=count, rule="random", seats=_random_free_seats(count, occupied, rng))


def assign_seats(
    count: int,
    statuses: Iterable[SeatStatusEntry],
    rng: Optional[random.Random] = None,
) -> list[Seat]:
    """Seats for a pack of `count`; see module docstring for the rules."""
    return allocate(count, statuses, rng).seats


def _first_empty_table(occupied: set[tuple[int, int]]) -> list[Seat]:
    for table_id in table_ids():
        if len(free_seats_of_table(table_id, occupied)) == SEATS_PER_TABLE:
            return [Seat.of(table_id, seat_id) for seat_id in seat_ids()]
    return []


def _first_adjacent_pair(occupied: set[tuple[int, int]]) -> list[Seat]:
    for table_id in table_ids():
        free = free_seats_of_table(table_id, occupied)
        free_set = set(free)
        for seat_id in free:
            neighbour = next_seat(seat_id)
            if neighbour in free_set:
                return [Seat.of(table_id, seat_id), Seat.of(table_id, neighbour)]
    return []


def _random_free_seats(count: int, occupied: set[tuple[int, int]], rng: Optional[random.Random]) -> list[Seat]:
    rng = rng or random
    pool = [
        Seat.of(table_id, seat_id)
        for table_id in table_ids()
        for seat_id in seat_ids()
        if (table_id, seat_id) not in occupied
    ]

    chosen = []
    while pool and len(chosen) < count:
        chosen.append(pool.pop(rng.randrange(len(pool))))
    return chosen
