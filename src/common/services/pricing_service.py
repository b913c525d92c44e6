"""Seasonal pricing.

Nightly rates are derived from a fixed season table keyed by calendar month
and a weekend surcharge. Every amount is a ``Decimal`` and day rates are
rounded half-up to whole currency units one night at a time, so the sum of
the breakdown is always the subtotal.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple, Union

from common.models.bookings import NightlyRate, PricingSnapshot
from common.models.units import PricingUnit
from common.utils.constants import (
    DEFAULT_CLEANING_FEE,
    DEFAULT_CURRENCY,
    DEFAULT_SERVICE_FEE_RATE,
)
from common.utils.custom_exceptions import InvalidRange
from common.utils.datetime_normaliser import iter_nights, utc_today

WHOLE_UNIT = Decimal("1")
TWO_PLACES = Decimal("0.01")

WEEKEND_MULTIPLIER = Decimal("1.1")
WEEKEND_DAYS = (5, 6)


@dataclass(frozen=True)
class Season:
    key: str
    name: str
    multiplier: Decimal
    months: Tuple[int, ...]


# first matching season wins
SEASONS: Tuple[Season, ...] = (
    Season("peak", "Peak Season", Decimal("1.3"), (12, 1)),
    Season("summer", "Summer Season", Decimal("1.2"), (4, 5)),
    Season("monsoon", "Monsoon Drop", Decimal("0.85"), (7, 8)),
    Season("regular", "Regular Season", Decimal("1.0"), (2, 3, 6, 9, 10, 11)),
)

REGULAR_SEASON = SEASONS[-1]


@dataclass(frozen=True)
class PricingResult:
    nights: int
    base_nightly_rate: Decimal
    base_price: Decimal
    seasonal_adjustment: Decimal
    average_multiplier: Decimal
    subtotal: Decimal
    breakdown: Tuple[NightlyRate, ...]


@dataclass(frozen=True)
class FeePolicy:
    service_fee_rate: Decimal = DEFAULT_SERVICE_FEE_RATE
    cleaning_fee: Decimal = DEFAULT_CLEANING_FEE
    currency: str = DEFAULT_CURRENCY

    def service_fee(self, subtotal: Decimal) -> Decimal:
        return _round_whole(subtotal * self.service_fee_rate)

    def apply(
        self, result: PricingResult, pricing_unit: PricingUnit = PricingUnit.NIGHT
    ) -> PricingSnapshot:
        service_fee = self.service_fee(result.subtotal)
        return PricingSnapshot(
            nightly_rate=result.base_nightly_rate,
            nights=result.nights,
            base_price=result.base_price,
            average_multiplier=result.average_multiplier,
            seasonal_adjustment=result.seasonal_adjustment,
            subtotal=result.subtotal,
            service_fee=service_fee,
            total=result.subtotal + self.cleaning_fee + service_fee,
            breakdown=result.breakdown,
            cleaning_fee=self.cleaning_fee,
            pricing_unit=pricing_unit,
            currency=self.currency,
        )


def _round_whole(value: Decimal) -> Decimal:
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def get_season_for_date(day: date) -> Season:
    for season in SEASONS:
        if day.month in season.months:
            return season
    return REGULAR_SEASON


def current_season() -> Season:
    return get_season_for_date(utc_today())


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def get_multiplier_for_date(day: date) -> Tuple[Decimal, str]:
    season = get_season_for_date(day)
    multiplier = season.multiplier
    label = season.name
    if is_weekend(day):
        multiplier = multiplier * WEEKEND_MULTIPLIER
        label = f"{season.name} (Weekend)"
    return multiplier.quantize(TWO_PLACES, rounding=ROUND_HALF_UP), label


def price(
    base_rate: Union[Decimal, int, float, str], check_in: date, check_out: date
) -> PricingResult:
    if check_out <= check_in:
        raise InvalidRange("check_out must be after check_in")

    base_rate = _to_decimal(base_rate)
    breakdown = []
    for night in iter_nights(check_in, check_out):
        multiplier, label = get_multiplier_for_date(night)
        breakdown.append(
            NightlyRate(
                date=night,
                rate=_round_whole(base_rate * multiplier),
                season_name=label,
                multiplier=multiplier,
            )
        )

    nights = len(breakdown)
    subtotal = sum((n.rate for n in breakdown), Decimal("0"))
    base_price = base_rate * nights
    average_multiplier = (
        sum((n.multiplier for n in breakdown), Decimal("0")) / nights
    ).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)

    return PricingResult(
        nights=nights,
        base_nightly_rate=base_rate,
        base_price=base_price,
        seasonal_adjustment=subtotal - base_price,
        average_multiplier=average_multiplier,
        subtotal=subtotal,
        breakdown=tuple(breakdown),
    )
