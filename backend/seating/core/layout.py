"""
Fixed venue layout: 25 round tables of 10 seats.

Seats are addressed either as (table_id, seat_id) or by a global id
in [1, 250]. Seat numbering runs clockwise around the table, so seat 10
and seat 1 are neighbours.
"""

TABLE_COUNT = 25
SEATS_PER_TABLE = 10
TOTAL_SEATS = TABLE_COUNT * SEATS_PER_TABLE

# Tables per row on the printed plan; purely presentational.
TABLE_ROWS = (4, 3, 4, 3, 4, 3, 4)


def global_seat_id(table_id: int, seat_id: int) -> int:
    return (table_id - 1) * SEATS_PER_TABLE + seat_id


def split_global_seat_id(global_id: int) -> tuple[int, int]:
    """Inverse of global_seat_id: 23 -> (3, 3)."""
    if not 1 <= global_id <= TOTAL_SEATS:
        raise ValueError(f"Global seat id {global_id} outside 1..{TOTAL_SEATS}")
    return (global_id - 1) // SEATS_PER_TABLE + 1, (global_id - 1) % SEATS_PER_TABLE + 1


def next_seat(seat_id: int) -> int:
    """Circular successor around a table (10 -> 1)."""
    return 1 if seat_id == SEATS_PER_TABLE else seat_id + 1


def table_ids() -> range:
    return range(1, TABLE_COUNT + 1)


def seat_ids() -> range:
    return range(1, SEATS_PER_TABLE + 1)


def table_rows() -> list[list[int]]:
    """Table ids grouped into the rows of the plan."""
    rows = []
    start = 1
    for count in TABLE_ROWS:
        rows.append(list(range(start, start + count)))
        start += count
    return rows
