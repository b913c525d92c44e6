from enum import Enum
from dataclasses import dataclass
from decimal import Decimal


class PricingUnit(str, Enum):
    NIGHT = "night"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


class CancellationPolicy(str, Enum):
    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"


# nights covered by one pricing unit when checking stay limits
NIGHTS_PER_UNIT = {
    PricingUnit.NIGHT: 1,
    PricingUnit.HOUR: 1,
    PricingUnit.DAY: 1,
    PricingUnit.WEEK: 7,
}


@dataclass
class RentalUnit:
    unit_id: str
    owner_id: str
    base_rate: Decimal
    pricing_unit: PricingUnit = PricingUnit.NIGHT
    min_stay: int = 1
    max_stay: int = 30
    max_guests: int = 4
    cancellation_policy: CancellationPolicy = CancellationPolicy.MODERATE
    active: bool = True

    @property
    def min_stay_nights(self) -> int:
        return self.min_stay * NIGHTS_PER_UNIT[self.pricing_unit]

    @property
    def max_stay_nights(self) -> int:
        return self.max_stay * NIGHTS_PER_UNIT[self.pricing_unit]
