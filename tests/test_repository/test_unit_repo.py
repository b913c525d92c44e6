import unittest
from unittest.mock import MagicMock
from decimal import Decimal
from botocore.exceptions import ClientError

from common.models.units import CancellationPolicy, PricingUnit
from common.repository.unit_repo import UnitRepository


class TestUnitRepository(unittest.TestCase):

    def setUp(self):
        self.table = MagicMock()
        self.repo = UnitRepository(self.table)

    def test_get_unit_by_id(self):
        self.table.get_item.return_value = {
            "Item": {
                "pk": "UNIT#unit1",
                "sk": "DETAILS",
                "owner_id": "host1",
                "base_rate": Decimal("2500"),
                "pricing_unit": "week",
                "min_stay": Decimal("1"),
                "max_stay": Decimal("4"),
                "max_guests": Decimal("6"),
                "cancellation_policy": "strict",
                "unit_status": "active",
            }
        }

        unit = self.repo.get_unit_by_id("unit1")

        self.table.get_item.assert_called_once_with(Key={"pk": "UNIT#unit1", "sk": "DETAILS"})
        self.assertEqual(unit.owner_id, "host1")
        self.assertEqual(unit.base_rate, Decimal("2500"))
        self.assertEqual(unit.pricing_unit, PricingUnit.WEEK)
        self.assertEqual(unit.min_stay_nights, 7)
        self.assertEqual(unit.max_stay_nights, 28)
        self.assertEqual(unit.max_guests, 6)
        self.assertEqual(unit.cancellation_policy, CancellationPolicy.STRICT)
        self.assertTrue(unit.active)

    def test_defaults(self):
        self.table.get_item.return_value = {
            "Item": {"owner_id": "host1", "base_rate": 1000}
        }

        unit = self.repo.get_unit_by_id("unit1")

        self.assertEqual(unit.base_rate, Decimal("1000"))
        self.assertEqual(unit.pricing_unit, PricingUnit.NIGHT)
        self.assertEqual(unit.min_stay, 1)
        self.assertEqual(unit.max_stay, 30)
        self.assertEqual(unit.max_guests, 4)
        self.assertEqual(unit.cancellation_policy, CancellationPolicy.MODERATE)

    def test_inactive_unit(self):
        self.table.get_item.return_value = {
            "Item": {"owner_id": "host1", "base_rate": 1000, "unit_status": "archived"}
        }
        self.assertFalse(self.repo.get_unit_by_id("unit1").active)

    def test_not_found(self):
        self.table.get_item.return_value = {}
        self.assertIsNone(self.repo.get_unit_by_id("missing"))

    def test_client_error(self):
        self.table.get_item.side_effect = ClientError(
            {"Error": {"Code": "InternalError", "Message": "fail"}}, "GetItem"
        )
        with self.assertRaises(ClientError):
            self.repo.get_unit_by_id("unit1")


if __name__ == "__main__":
    unittest.main()
