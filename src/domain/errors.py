"""
Reservation error taxonomy.

Domain code raises these; the API layer maps them to HTTP responses
(see ``src.api.errors``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .entities import DateWindow


class ReservationError(Exception):
    """Base class for every error raised by the reservation core."""


class ValidationError(ReservationError):
    """Malformed input: reversed date range, unparsable duration, ..."""


class NotFoundError(ReservationError):
    """An operation referenced a booking or vehicle that does not exist."""


class InvalidTransitionError(ReservationError):
    """Raised when a booking status change violates the state machine."""


class ConflictError(ReservationError):
    """The requested range overlaps days already locked for the vehicle."""

    def __init__(self, vehicle_id: str, conflict: DateWindow):
        self.vehicle_id = vehicle_id
        self.conflict = conflict
        super().__init__(
            f"Vehicle {vehicle_id} is already booked from "
            f"{conflict.start_date.isoformat()} to {conflict.end_date.isoformat()}"
        )
