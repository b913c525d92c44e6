from dataclasses import dataclass, field
from datetime import date
from typing import List
from common.models.bookings import BookingStatus


@dataclass(frozen=True)
class ConflictingBooking:
    booking_id: str
    check_in: date
    check_out: date
    status: BookingStatus


@dataclass
class AvailabilityResult:
    available: bool
    conflicts: List[ConflictingBooking] = field(default_factory=list)


@dataclass
class CalendarDay:
    date: date
    day: int
    is_blocked: bool
    is_past: bool

    @property
    def available(self) -> bool:
        return not self.is_blocked and not self.is_past


@dataclass
class CalendarMonth:
    year: int
    month: int
    month_name: str
    days: List[CalendarDay] = field(default_factory=list)


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date
