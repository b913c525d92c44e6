from pydantic import BaseModel, Field
from typing import List

from common.models.availability import CalendarMonth, ConflictingBooking, DateRange
from common.utils.constants import DEFAULT_CALENDAR_MONTHS, DEFAULT_RANGE_DAYS, MAX_CALENDAR_MONTHS


class CalendarQuery(BaseModel):
    months: int = Field(default=DEFAULT_CALENDAR_MONTHS, ge=1, le=MAX_CALENDAR_MONTHS)
    days_ahead: int = Field(default=DEFAULT_RANGE_DAYS, ge=1, le=366)


def conflicts_to_list(conflicts: List[ConflictingBooking]) -> List[dict]:
    return [
        {
            "booking_id": c.booking_id,
            "check_in": c.check_in,
            "check_out": c.check_out,
            "status": c.status.value,
        }
        for c in conflicts
    ]


def calendar_to_list(months: List[CalendarMonth]) -> List[dict]:
    return [
        {
            "year": m.year,
            "month": m.month,
            "month_name": m.month_name,
            "days": [
                {
                    "date": d.date,
                    "day": d.day,
                    "is_blocked": d.is_blocked,
                    "is_past": d.is_past,
                    "available": d.available,
                }
                for d in m.days
            ],
        }
        for m in months
    ]


def ranges_to_list(ranges: List[DateRange]) -> List[dict]:
    return [{"start": r.start, "end": r.end} for r in ranges]
