"""
Domain exceptions and their HTTP rendering.

Not-found and capacity shortfall are reported through return values by the
stores and the coordinator; exceptions are reserved for requests that would
break the seat/reservation invariant.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from seating.core.logging import get_logger

logger = get_logger(__name__)


class SeatingError(Exception):
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class SeatUnavailableError(SeatingError):
    """A requested seat is already booked, blocked, or listed twice."""

    def __init__(self, message: str, seats=()):
        self.seats = list(seats)
        super().__init__(message, status.HTTP_409_CONFLICT)


class InsufficientSeatsError(SeatingError):
    """Raised only in strict allocation mode."""

    def __init__(self, requested: int, assigned: int):
        self.requested = requested
        self.assigned = assigned
        super().__init__(
            f"Not enough seats. Requested: {requested}, Available: {assigned}",
            status.HTTP_409_CONFLICT,
        )


async def seating_error_handler(request: Request, exc: SeatingError) -> JSONResponse:
    logger.warning("seating_error", error=exc.message, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


EXCEPTION_HANDLERS = {
    SeatingError: seating_error_handler,
}


def register_exception_handlers(app) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
