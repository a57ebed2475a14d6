"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.UPCOMING: {BookingStatus.ACTIVE, BookingStatus.CANCELLED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

# Bookings in these states still hold their slot locks
OPEN_STATUSES = frozenset({BookingStatus.UPCOMING, BookingStatus.ACTIVE})


class VehicleType(str, enum.Enum):
    BIKE = "bike"
    SCOOTER = "scooter"
    CAR = "car"


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"


class DurationUnit(str, enum.Enum):
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
