from botocore.exceptions import ClientError
import logging
from decimal import Decimal
from typing import Optional
from common.models.units import CancellationPolicy, PricingUnit, RentalUnit

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
else:
    Table = object


logger = logging.getLogger(__name__)


class UnitRepository:
    """Read access to rental units owned by the listings service."""

    def __init__(self, table: Table):
        self.table = table

    def get_unit_by_id(self, unit_id: str) -> Optional[RentalUnit]:
        try:
            response = self.table.get_item(
                Key={"pk": f"UNIT#{unit_id}", "sk": "DETAILS"}
            )
        except ClientError as err:
            logger.error(f"Error retrieving unit by id {unit_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(unit_id, item)

    @staticmethod
    def _to_domain(unit_id: str, item: dict) -> RentalUnit:
        return RentalUnit(
            unit_id=unit_id,
            owner_id=item["owner_id"],
            base_rate=Decimal(str(item["base_rate"])),
            pricing_unit=PricingUnit(item.get("pricing_unit", "night")),
            min_stay=int(item.get("min_stay", 1)),
            max_stay=int(item.get("max_stay", 30)),
            max_guests=int(item.get("max_guests", 4)),
            cancellation_policy=CancellationPolicy(
                item.get("cancellation_policy", "moderate")
            ),
            active=item.get("unit_status", "active") == "active",
        )
