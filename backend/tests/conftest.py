"""
Pytest fixtures for stores, the reservation coordinator, and the HTTP client.

Every test gets a fresh in-memory blob store, a seeded random generator
and a fake clock, so allocations and timestamps are reproducible.
"""

import itertools
import random
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from seating.main import app
from seating.api.deps import get_reservation_service
from seating.core.layout import seat_ids
from seating.schemas.seat import Seat, SeatSource, SeatStatusEntry
from seating.services.interfaces.memory_store import MemoryBlobStore
from seating.services.reservation_service import ReservationService


def seats(*pairs) -> list[Seat]:
    """seats((1, 1), (1, 2)) -> [Seat(1, 1), Seat(1, 2)]"""
    return [Seat.of(table_id, seat_id) for table_id, seat_id in pairs]


def entries(*pairs, source: SeatSource = SeatSource.USER) -> list[SeatStatusEntry]:
    return [SeatStatusEntry(table_id=t, seat_id=s, source=source) for t, s in pairs]


def whole_table(table_id: int) -> list[tuple[int, int]]:
    return [(table_id, seat_id) for seat_id in seat_ids()]


async def assert_consistent(service: ReservationService) -> None:
    """User-booked seats are exactly the disjoint union of reservation seats."""
    statuses = await service.get_seat_statuses()
    reservations = await service.list_reservations()

    user_booked = {s.seat.key for s in statuses if s.source == SeatSource.USER}
    claimed = [seat.key for r in reservations for seat in r.seats]

    assert len(claimed) == len(set(claimed)), "a seat belongs to two reservations"
    assert set(claimed) == user_booked


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def clock():
    ticks = itertools.count(start=1_767_225_600_000, step=1000)
    return lambda: next(ticks)


@pytest.fixture
def service(blob_store: MemoryBlobStore, clock) -> ReservationService:
    return ReservationService(blob_store, rng=random.Random(1234), clock=clock)


@pytest_asyncio.fixture(scope="function")
async def client(service: ReservationService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the coordinator dependency with the test instance."""
    app.dependency_overrides[get_reservation_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
