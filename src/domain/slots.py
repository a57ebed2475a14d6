"""
Slot key derivation.

A slot is the exclusive claim of one vehicle on one calendar day.  Keys
are plain strings (``"<vehicle_id>_<YYYY-MM-DD>"``) so they can be
stored on the booking and shown to operators as-is.

Days are local calendar days: no timezone arithmetic is performed.

Complexity: O(d) where d = number of days in the range.
"""

from __future__ import annotations

from datetime import date, timedelta

from .errors import ValidationError


def day_range(start_date: date, end_date: date) -> list[date]:
    """Every calendar day in ``[start_date, end_date]``, in order."""
    if start_date > end_date:
        raise ValidationError(
            f"start_date {start_date} is after end_date {end_date}"
        )
    span = (end_date - start_date).days
    return [start_date + timedelta(days=i) for i in range(span + 1)]


def slot_key(vehicle_id: str, day: date) -> str:
    return f"{vehicle_id}_{day.isoformat()}"


def slot_keys(vehicle_id: str, start_date: date, end_date: date) -> list[str]:
    return [slot_key(vehicle_id, d) for d in day_range(start_date, end_date)]
