"""
Domain value objects and the booking state guard.

Patterns used
-------------
- **State Pattern** on bookings: ``ensure_transition`` enforces valid
  lifecycle transitions (UPCOMING -> ACTIVE -> COMPLETED | CANCELLED).
- ``DateWindow`` is the inclusive calendar-day range used both for
  requested reservations and for reported conflicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from .enums import BOOKING_TRANSITIONS, BookingStatus
from .errors import InvalidTransitionError, ValidationError


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class DateWindow:
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValidationError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )

    @classmethod
    def from_days(cls, days: Iterable[date]) -> DateWindow:
        """Smallest window covering every day in *days* (must be non-empty)."""
        days = list(days)
        if not days:
            raise ValueError("Cannot build a window from no days")
        return cls(min(days), max(days))

    @property
    def length(self) -> int:
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class AvailabilityResult:
    ok: bool
    conflict: Optional[DateWindow] = None

    @classmethod
    def available(cls) -> AvailabilityResult:
        return cls(ok=True)

    @classmethod
    def blocked(cls, locked_days: Iterable[date]) -> AvailabilityResult:
        return cls(ok=False, conflict=DateWindow.from_days(locked_days))


# ── State guard ───────────────────────────────────────────────────────


def ensure_transition(current: BookingStatus, new_status: BookingStatus) -> None:
    """Raise unless moving from *current* to *new_status* is legal."""
    allowed = BOOKING_TRANSITIONS.get(BookingStatus(current), set())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition booking from {BookingStatus(current).value} "
            f"to {new_status.value}"
        )
