import importlib
import json
import os
import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

from common.models.bookings import Occupancy
from common.models.units import CancellationPolicy, RentalUnit
from common.services.pricing_service import FeePolicy, price
from common.utils.custom_exceptions import BookingValidationError, NotFoundException


class QuotePriceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(os.environ, {"TABLE_NAME": "test-table"}, clear=False)
        cls.env.start()
        cls.resource = patch("handlers.bookings.quote_price.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.bookings.quote_price as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop(); cls.env.stop()

    def setUp(self):
        self.p_unit = patch.object(self.mod.booking_service, "get_unit")
        self.p_quote = patch.object(self.mod.booking_service, "quote_price")
        self.mock_unit = self.p_unit.start()
        self.mock_quote = self.p_quote.start()
        self.mock_unit.return_value = RentalUnit(
            unit_id="unit1",
            owner_id="host1",
            base_rate=Decimal("2000"),
            cancellation_policy=CancellationPolicy.FLEXIBLE,
        )

    def tearDown(self):
        self.p_unit.stop()
        self.p_quote.stop()

    def _event(self, params=None):
        return {
            "pathParameters": {"unit_id": "unit1"},
            "queryStringParameters": params
            if params is not None
            else {"check_in": "2025-12-30", "check_out": "2026-01-01", "adults": "2", "infants": "1"},
        }

    def test_success(self):
        self.mock_quote.return_value = FeePolicy().apply(
            price(Decimal("2000"), date(2025, 12, 30), date(2026, 1, 1))
        )

        resp = self.mod.quote_price(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_quote.assert_called_once_with(
            "unit1", date(2025, 12, 30), date(2026, 1, 1), Occupancy(adults=2, infants=1)
        )
        data = json.loads(resp["body"])["data"]
        self.assertEqual(Decimal(str(data["pricing"]["subtotal"])), Decimal("5200"))
        self.assertEqual(Decimal(str(data["pricing"]["total"])), Decimal("5824"))
        self.assertEqual(len(data["pricing"]["breakdown"]), 2)
        self.assertIn("24 hours", data["cancellation_policy"])

    def test_bad_query_returns_400(self):
        resp = self.mod.quote_price(self._event({"check_in": "2026-01-01"}), None)
        self.assertEqual(400, resp["statusCode"])

    def test_zero_adults_returns_400(self):
        params = {"check_in": "2026-03-10", "check_out": "2026-03-12", "adults": "0"}
        resp = self.mod.quote_price(self._event(params), None)
        self.assertEqual(400, resp["statusCode"])

    def test_business_validation_returns_400(self):
        self.mock_quote.side_effect = BookingValidationError("Maximum 4 guests allowed")
        resp = self.mod.quote_price(self._event(), None)
        self.assertEqual(400, resp["statusCode"])

    def test_unit_not_found(self):
        self.mock_unit.side_effect = NotFoundException("unit", "unit1", 404)
        resp = self.mod.quote_price(self._event(), None)
        self.assertEqual(404, resp["statusCode"])


if __name__ == "__main__":
    unittest.main()
