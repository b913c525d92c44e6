import unittest
from datetime import date, datetime, timezone
from common.utils.datetime_normaliser import from_iso_string, iter_nights, to_iso_string

class TestDatetimeNormaliser(unittest.TestCase):
    def test_from_iso_string_with_timezone(self):
        iso = "2026-01-29T12:00:00+05:30"
        dt = from_iso_string(iso)
        self.assertIsInstance(dt, datetime)
        self.assertEqual(dt.tzinfo, timezone.utc)
        self.assertEqual(dt.hour, 6)

    def test_from_iso_string_utc(self):
        iso = "2026-01-29T06:00:00+00:00"
        dt = from_iso_string(iso)
        self.assertEqual(dt.tzinfo, timezone.utc)
        self.assertEqual(dt.hour, 6)

    def test_from_iso_string_naive_raises(self):
        with self.assertRaises(ValueError):
            from_iso_string("2026-01-29T12:00:00")

    def test_to_iso_string_converts_to_utc(self):
        dt = from_iso_string("2026-01-29T12:00:00+05:30")
        self.assertEqual(to_iso_string(dt), "2026-01-29T06:30:00+00:00")

    def test_to_iso_string_naive_raises(self):
        with self.assertRaises(ValueError):
            to_iso_string(datetime(2026, 1, 29, 12))

    def test_iter_nights_is_half_open(self):
        nights = list(iter_nights(date(2026, 1, 30), date(2026, 2, 2)))
        self.assertEqual(
            nights, [date(2026, 1, 30), date(2026, 1, 31), date(2026, 2, 1)]
        )

    def test_iter_nights_empty_range(self):
        self.assertEqual(list(iter_nights(date(2026, 1, 30), date(2026, 1, 30))), [])

if __name__ == "__main__":
    unittest.main()
