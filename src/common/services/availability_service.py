import calendar
import logging
from datetime import date, timedelta
from typing import List, Optional

from common.models.availability import (
    AvailabilityResult,
    CalendarDay,
    CalendarMonth,
    ConflictingBooking,
    DateRange,
)
from common.models.bookings import ACTIVE_HOLD_STATUSES
from common.repository.booking_repo import BookingRepository
from common.utils.constants import (
    DEFAULT_CALENDAR_MONTHS,
    DEFAULT_RANGE_DAYS,
    MAX_CALENDAR_MONTHS,
    MAX_STAY,
)
from common.utils.custom_exceptions import BookingValidationError, InvalidRange
from common.utils.datetime_normaliser import utc_today

logger = logging.getLogger(__name__)


def dates_overlap(
    check_in_a: date, check_out_a: date, check_in_b: date, check_out_b: date
) -> bool:
    """Half-open overlap: a checkout on another stay's check-in day is free."""
    return check_in_a < check_out_b and check_out_a > check_in_b


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    return date(day.year + month_index // 12, month_index % 12 + 1, 1)


class AvailabilityService:
    def __init__(self, booking_repo: BookingRepository):
        self.booking_repo = booking_repo

    def get_active_holds(
        self, unit_id: str, start: date, end: date
    ) -> List[ConflictingBooking]:
        """Active holds whose stay intersects [start, end)."""
        # a stay can begin up to MAX_STAY nights before the window and still reach into it
        stays = self.booking_repo.get_unit_stays(
            unit_id, start - timedelta(days=MAX_STAY), end
        )
        return sorted(
            (
                stay
                for stay in stays
                if stay.status in ACTIVE_HOLD_STATUSES
                and dates_overlap(stay.check_in, stay.check_out, start, end)
            ),
            key=lambda stay: (stay.check_in, stay.booking_id),
        )

    def find_conflicts(
        self,
        unit_id: str,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[str] = None,
    ) -> List[ConflictingBooking]:
        if check_out <= check_in:
            raise InvalidRange("check_out must be after check_in")

        return [
            hold
            for hold in self.get_active_holds(unit_id, check_in, check_out)
            if hold.booking_id != exclude_booking_id
        ]

    def check_availability(
        self,
        unit_id: str,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[str] = None,
    ) -> AvailabilityResult:
        conflicts = self.find_conflicts(unit_id, check_in, check_out, exclude_booking_id)
        if conflicts:
            logger.info(
                f"Unit {unit_id} unavailable {check_in}..{check_out}: "
                f"{len(conflicts)} conflicting booking(s)"
            )
        return AvailabilityResult(available=not conflicts, conflicts=conflicts)

    def get_calendar(
        self, unit_id: str, months_ahead: int = DEFAULT_CALENDAR_MONTHS
    ) -> List[CalendarMonth]:
        if months_ahead < 1 or months_ahead > MAX_CALENDAR_MONTHS:
            raise BookingValidationError(
                f"months_ahead must be between 1 and {MAX_CALENDAR_MONTHS}"
            )

        today = utc_today()
        first_day = today.replace(day=1)
        window_end = _add_months(first_day, months_ahead)

        blocked = set()
        for hold in self.get_active_holds(unit_id, first_day, window_end):
            night = max(hold.check_in, first_day)
            while night < min(hold.check_out, window_end):
                blocked.add(night)
                night += timedelta(days=1)

        months = []
        for offset in range(months_ahead):
            month_start = _add_months(first_day, offset)
            days_in_month = calendar.monthrange(month_start.year, month_start.month)[1]
            days = []
            for day_number in range(1, days_in_month + 1):
                day = month_start.replace(day=day_number)
                days.append(
                    CalendarDay(
                        date=day,
                        day=day_number,
                        is_blocked=day in blocked,
                        is_past=day < today,
                    )
                )
            months.append(
                CalendarMonth(
                    year=month_start.year,
                    month=month_start.month,
                    month_name=calendar.month_name[month_start.month],
                    days=days,
                )
            )
        return months

    def get_available_ranges(
        self, unit_id: str, days_ahead: int = DEFAULT_RANGE_DAYS
    ) -> List[DateRange]:
        if days_ahead < 1:
            raise BookingValidationError("days_ahead must be positive")

        today = utc_today()
        end = today + timedelta(days=days_ahead)

        ranges = []
        cursor = today
        for hold in self.get_active_holds(unit_id, today, end):
            if hold.check_in > cursor:
                ranges.append(DateRange(start=cursor, end=min(hold.check_in, end)))
            cursor = max(cursor, hold.check_out)

        if cursor < end:
            ranges.append(DateRange(start=cursor, end=end))
        return ranges
