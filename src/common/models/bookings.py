from enum import Enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple
from common.models.units import PricingUnit


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# bookings in these states own their nights on the unit
ACTIVE_HOLD_STATUSES = frozenset({BookingStatus.PAID, BookingStatus.CONFIRMED})


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class RefundStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CancelledBy(str, Enum):
    GUEST = "guest"
    HOST = "host"
    SYSTEM = "system"


@dataclass(frozen=True)
class Occupancy:
    adults: int = 1
    children: int = 0
    infants: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants


@dataclass(frozen=True)
class NightlyRate:
    date: date
    rate: Decimal
    season_name: str
    multiplier: Decimal


@dataclass(frozen=True)
class PricingSnapshot:
    nightly_rate: Decimal
    nights: int
    base_price: Decimal
    average_multiplier: Decimal
    seasonal_adjustment: Decimal
    subtotal: Decimal
    service_fee: Decimal
    total: Decimal
    breakdown: Tuple[NightlyRate, ...] = ()
    cleaning_fee: Decimal = Decimal("0")
    pricing_unit: PricingUnit = PricingUnit.NIGHT
    currency: str = "INR"


@dataclass
class PaymentInfo:
    provider: Optional[str] = None
    provider_order_id: Optional[str] = None
    client_session_token: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None
    transaction_ref: Optional[str] = None


@dataclass
class Cancellation:
    cancelled_by: CancelledBy
    cancelled_at: datetime
    reason: str
    refund_status: RefundStatus = RefundStatus.NONE
    refund_amount: Decimal = Decimal("0")
    refund_ref: Optional[str] = None


@dataclass
class Booking:
    booking_id: str
    unit_id: str
    guest_id: str
    host_id: str
    check_in: date
    check_out: date
    occupancy: Occupancy
    pricing: PricingSnapshot
    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    payment: PaymentInfo = field(default_factory=PaymentInfo)
    cancellation: Optional[Cancellation] = None

    guest_message: Optional[str] = None
    host_response: Optional[str] = None

    version: int = 1
    booked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def is_active_hold(self) -> bool:
        return self.status in ACTIVE_HOLD_STATUSES

    @property
    def display_status(self) -> str:
        # hosts see paid bookings as awaiting their approval
        if self.status == BookingStatus.PAID:
            return "pending_approval"
        return self.status.value


@dataclass
class BookingSummary:
    booking_id: str
    unit_id: str
    check_in: date
    check_out: date
    status: BookingStatus
    total: Decimal
