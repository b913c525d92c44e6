import unittest
from datetime import date, timedelta
from unittest.mock import MagicMock, patch

from common.models.availability import ConflictingBooking, DateRange
from common.models.bookings import BookingStatus
from common.services.availability_service import AvailabilityService, dates_overlap
from common.utils.custom_exceptions import BookingValidationError, InvalidRange


def stay(booking_id, check_in, check_out, status=BookingStatus.CONFIRMED):
    return ConflictingBooking(booking_id, check_in, check_out, status)


class TestDatesOverlap(unittest.TestCase):
    def test_checkout_day_is_free(self):
        self.assertFalse(
            dates_overlap(date(2026, 3, 10), date(2026, 3, 12), date(2026, 3, 12), date(2026, 3, 14))
        )
        self.assertFalse(
            dates_overlap(date(2026, 3, 12), date(2026, 3, 14), date(2026, 3, 10), date(2026, 3, 12))
        )

    def test_partial_and_contained_overlap(self):
        self.assertTrue(
            dates_overlap(date(2026, 3, 10), date(2026, 3, 12), date(2026, 3, 11), date(2026, 3, 14))
        )
        self.assertTrue(
            dates_overlap(date(2026, 3, 10), date(2026, 3, 20), date(2026, 3, 11), date(2026, 3, 12))
        )


class TestAvailabilityService(unittest.TestCase):
    def setUp(self):
        self.booking_repo = MagicMock()
        self.service = AvailabilityService(self.booking_repo)

    def test_query_window_reaches_back_by_max_stay(self):
        self.booking_repo.get_unit_stays.return_value = []

        self.service.find_conflicts("unit1", date(2026, 3, 10), date(2026, 3, 12))

        self.booking_repo.get_unit_stays.assert_called_once_with(
            "unit1", date(2026, 2, 8), date(2026, 3, 12)
        )

    def test_only_active_holds_conflict(self):
        self.booking_repo.get_unit_stays.return_value = [
            stay("pending", date(2026, 3, 10), date(2026, 3, 12), BookingStatus.PENDING_PAYMENT),
            stay("cancelled", date(2026, 3, 10), date(2026, 3, 12), BookingStatus.CANCELLED),
            stay("rejected", date(2026, 3, 10), date(2026, 3, 12), BookingStatus.REJECTED),
            stay("completed", date(2026, 3, 10), date(2026, 3, 12), BookingStatus.COMPLETED),
            stay("paid", date(2026, 3, 11), date(2026, 3, 13), BookingStatus.PAID),
            stay("confirmed", date(2026, 3, 9), date(2026, 3, 11), BookingStatus.CONFIRMED),
        ]

        conflicts = self.service.find_conflicts("unit1", date(2026, 3, 10), date(2026, 3, 12))

        self.assertEqual([c.booking_id for c in conflicts], ["confirmed", "paid"])

    def test_back_to_back_stays_do_not_conflict(self):
        self.booking_repo.get_unit_stays.return_value = [
            stay("before", date(2026, 3, 8), date(2026, 3, 10)),
        ]

        result = self.service.check_availability("unit1", date(2026, 3, 10), date(2026, 3, 12))

        self.assertTrue(result.available)
        self.assertEqual(result.conflicts, [])

    def test_exclude_booking_id(self):
        self.booking_repo.get_unit_stays.return_value = [
            stay("b1", date(2026, 3, 10), date(2026, 3, 12)),
        ]

        conflicts = self.service.find_conflicts(
            "unit1", date(2026, 3, 10), date(2026, 3, 12), exclude_booking_id="b1"
        )

        self.assertEqual(conflicts, [])

    def test_unavailable_result_lists_conflicts(self):
        self.booking_repo.get_unit_stays.return_value = [
            stay("b1", date(2026, 3, 11), date(2026, 3, 15)),
        ]

        result = self.service.check_availability("unit1", date(2026, 3, 10), date(2026, 3, 12))

        self.assertFalse(result.available)
        self.assertEqual(result.conflicts[0].booking_id, "b1")

    def test_invalid_range(self):
        with self.assertRaises(InvalidRange):
            self.service.find_conflicts("unit1", date(2026, 3, 12), date(2026, 3, 12))
        self.booking_repo.get_unit_stays.assert_not_called()

    @patch("common.services.availability_service.utc_today", return_value=date(2026, 3, 15))
    def test_calendar(self, _):
        self.booking_repo.get_unit_stays.return_value = [
            stay("b1", date(2026, 3, 20), date(2026, 3, 22)),
            stay("b2", date(2026, 3, 30), date(2026, 4, 2), BookingStatus.PAID),
            stay("b3", date(2026, 4, 5), date(2026, 4, 7), BookingStatus.PENDING_PAYMENT),
        ]

        months = self.service.get_calendar("unit1", 2)

        self.assertEqual([(m.year, m.month, m.month_name) for m in months], [(2026, 3, "March"), (2026, 4, "April")])
        self.assertEqual(len(months[0].days), 31)
        self.assertEqual(len(months[1].days), 30)

        march = {d.date: d for d in months[0].days}
        april = {d.date: d for d in months[1].days}
        self.assertTrue(march[date(2026, 3, 1)].is_past)
        self.assertFalse(march[date(2026, 3, 1)].available)
        self.assertTrue(march[date(2026, 3, 15)].available)
        self.assertTrue(march[date(2026, 3, 20)].is_blocked)
        self.assertTrue(march[date(2026, 3, 21)].is_blocked)
        self.assertFalse(march[date(2026, 3, 22)].is_blocked)
        self.assertTrue(march[date(2026, 3, 31)].is_blocked)
        self.assertTrue(april[date(2026, 4, 1)].is_blocked)
        self.assertFalse(april[date(2026, 4, 2)].is_blocked)
        self.assertTrue(april[date(2026, 4, 5)].available)

        self.booking_repo.get_unit_stays.assert_called_once_with(
            "unit1", date(2026, 3, 1) - timedelta(days=30), date(2026, 5, 1)
        )

    @patch("common.services.availability_service.utc_today", return_value=date(2026, 11, 15))
    def test_calendar_crosses_year(self, _):
        self.booking_repo.get_unit_stays.return_value = []

        months = self.service.get_calendar("unit1", 3)

        self.assertEqual([(m.year, m.month) for m in months], [(2026, 11), (2026, 12), (2027, 1)])

    def test_calendar_month_bounds(self):
        with self.assertRaises(BookingValidationError):
            self.service.get_calendar("unit1", 0)
        with self.assertRaises(BookingValidationError):
            self.service.get_calendar("unit1", 13)

    @patch("common.services.availability_service.utc_today", return_value=date(2026, 3, 1))
    def test_available_ranges(self, _):
        self.booking_repo.get_unit_stays.return_value = [
            stay("b0", date(2026, 2, 27), date(2026, 3, 2)),
            stay("b1", date(2026, 3, 5), date(2026, 3, 8)),
            stay("b2", date(2026, 3, 8), date(2026, 3, 10)),
        ]

        ranges = self.service.get_available_ranges("unit1", 14)

        self.assertEqual(
            ranges,
            [
                DateRange(date(2026, 3, 2), date(2026, 3, 5)),
                DateRange(date(2026, 3, 10), date(2026, 3, 15)),
            ],
        )


if __name__ == "__main__":
    unittest.main()
