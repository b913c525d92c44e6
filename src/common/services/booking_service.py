import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional
from uuid import uuid4

from common.models.availability import AvailabilityResult, CalendarMonth
from common.models.bookings import (
    Booking,
    BookingStatus,
    BookingSummary,
    Occupancy,
    PricingSnapshot,
    ACTIVE_HOLD_STATUSES,
)
from common.models.units import RentalUnit
from common.models.users import ActorRole
from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services import pricing_service
from common.services.availability_service import AvailabilityService
from common.services.booking_state_machine import (
    BookingEvent,
    TransitionContext,
    USER_EVENTS,
    apply_transition,
    resolve_actor_role,
)
from common.services.pricing_service import FeePolicy
from common.services.rate_limit_service import RateLimitService
from common.services.schedule_service import SchedulerService
from common.utils.constants import (
    DEFAULT_CHECKOUT_HOUR_UTC,
    DEFAULT_PAYMENT_WINDOW_MINUTES,
    DEFAULT_RESERVE_COOLDOWN_SECONDS,
    MAX_STAY,
)
from common.utils.custom_exceptions import (
    BookingValidationError,
    DatesUnavailable,
    InvalidRange,
    InvalidTransition,
    NotFoundException,
    Unauthorized,
)
from common.utils.datetime_normaliser import utc_now, utc_today

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        unit_repo: UnitRepository,
        availability_service: Optional[AvailabilityService] = None,
        fee_policy: Optional[FeePolicy] = None,
        schedule_service: Optional[SchedulerService] = None,
        payment_window_minutes: int = DEFAULT_PAYMENT_WINDOW_MINUTES,
        checkout_hour_utc: int = DEFAULT_CHECKOUT_HOUR_UTC,
        rate_limit_service: Optional[RateLimitService] = None,
        reserve_cooldown_seconds: int = DEFAULT_RESERVE_COOLDOWN_SECONDS,
    ):
        self.booking_repo = booking_repo
        self.unit_repo = unit_repo
        self.availability_service = availability_service or AvailabilityService(booking_repo)
        self.fee_policy = fee_policy or FeePolicy()
        self.schedule_service = schedule_service
        self.payment_window = timedelta(minutes=payment_window_minutes)
        self.checkout_hour_utc = checkout_hour_utc
        self.rate_limit_service = rate_limit_service
        self.reserve_cooldown_seconds = reserve_cooldown_seconds

    # -------------------------
    # queries
    # -------------------------
    def get_unit(self, unit_id: str) -> RentalUnit:
        unit = self.unit_repo.get_unit_by_id(unit_id)
        if unit is None:
            raise NotFoundException("unit", unit_id, 404)
        return unit

    def check_availability(
        self, unit_id: str, check_in: date, check_out: date
    ) -> AvailabilityResult:
        self.get_unit(unit_id)
        return self.availability_service.check_availability(unit_id, check_in, check_out)

    def get_calendar(self, unit_id: str, months_ahead: int) -> List[CalendarMonth]:
        self.get_unit(unit_id)
        return self.availability_service.get_calendar(unit_id, months_ahead)

    def quote_price(
        self, unit_id: str, check_in: date, check_out: date, occupancy: Occupancy
    ) -> PricingSnapshot:
        unit = self.get_unit(unit_id)
        self._validate_request(unit, check_in, check_out, occupancy)
        return self._price(unit, check_in, check_out)

    def get_booking_record(self, booking_id: str) -> Booking:
        booking = self.booking_repo.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("booking", booking_id, 404)
        return booking

    def get_booking(self, booking_id: str, actor_id: str) -> Booking:
        booking = self.get_booking_record(booking_id)
        if resolve_actor_role(booking, actor_id) is None:
            raise Unauthorized("only the guest or host may view this booking")
        return booking

    def list_bookings(self, user_id: str, as_host: bool = False) -> List[BookingSummary]:
        if as_host:
            bookings = self.booking_repo.get_host_bookings(user_id)
        else:
            bookings = self.booking_repo.get_guest_bookings(user_id)
        return sorted(bookings, key=lambda b: b.check_in, reverse=not as_host)

    # -------------------------
    # reservation
    # -------------------------
    def _validate_request(
        self, unit: RentalUnit, check_in: date, check_out: date, occupancy: Occupancy
    ) -> int:
        if not unit.active:
            raise BookingValidationError("This listing is no longer available")

        if check_out <= check_in:
            raise InvalidRange("Check-out must be after check-in")

        if check_in < utc_today():
            raise BookingValidationError("Cannot book dates in the past")

        if occupancy.adults < 1 or occupancy.children < 0 or occupancy.infants < 0:
            raise BookingValidationError("At least one adult is required")

        if occupancy.total > unit.max_guests:
            raise BookingValidationError(
                f"Maximum {unit.max_guests} guests allowed for this listing"
            )

        nights = (check_out - check_in).days
        if nights < unit.min_stay_nights:
            raise BookingValidationError(
                f"Minimum stay is {unit.min_stay} {unit.pricing_unit.value}s"
            )
        if nights > min(unit.max_stay_nights, MAX_STAY):
            raise BookingValidationError(
                f"Maximum stay is {min(unit.max_stay_nights, MAX_STAY)} nights"
            )
        return nights

    def _price(self, unit: RentalUnit, check_in: date, check_out: date) -> PricingSnapshot:
        result = pricing_service.price(unit.base_rate, check_in, check_out)
        return self.fee_policy.apply(result, unit.pricing_unit)

    def reserve(
        self,
        unit_id: str,
        guest_id: str,
        check_in: date,
        check_out: date,
        occupancy: Occupancy,
        message: Optional[str] = None,
    ) -> Booking:
        unit = self.get_unit(unit_id)
        self._validate_request(unit, check_in, check_out, occupancy)

        conflicts = self.availability_service.find_conflicts(unit_id, check_in, check_out)
        if conflicts:
            raise DatesUnavailable("Selected dates are not available", conflicts)

        # only requests that would be accepted use up the guest's cooldown
        if self.rate_limit_service:
            self.rate_limit_service.enforce(
                guest_id, "reserve", self.reserve_cooldown_seconds
            )

        now = utc_now()
        booking = Booking(
            booking_id=str(uuid4()),
            unit_id=unit_id,
            guest_id=guest_id,
            host_id=unit.owner_id,
            check_in=check_in,
            check_out=check_out,
            occupancy=occupancy,
            pricing=self._price(unit, check_in, check_out),
            guest_message=message,
            booked_at=now,
            updated_at=now,
        )
        # night lock checks inside the insert close the gap since find_conflicts
        self.booking_repo.add_booking(booking)
        logger.info(
            f"Reserved unit {unit_id} {check_in}..{check_out} as booking {booking.booking_id}"
        )

        if self.schedule_service:
            try:
                self.schedule_service.schedule_payment_expiry(
                    booking.booking_id, now + self.payment_window
                )
            except Exception:
                # expiry is housekeeping; unpaid bookings never hold dates
                logger.exception(f"Could not schedule expiry for {booking.booking_id}")
        return booking

    # -------------------------
    # transitions
    # -------------------------
    def _apply(
        self,
        booking: Booking,
        event: BookingEvent,
        role: ActorRole,
        reason: Optional[str] = None,
        transaction_ref: Optional[str] = None,
    ) -> Booking:
        now = utc_now()
        ctx = TransitionContext(
            now=now,
            today=now.date(),
            role=role,
            reason=reason,
            transaction_ref=transaction_ref,
        )
        updated = apply_transition(booking, event, ctx)
        saved = self.booking_repo.save_booking(booking, updated)
        logger.info(
            f"Booking {booking.booking_id} {booking.status.value} -> {saved.status.value} "
            f"on {event.value} by {role.value}"
        )

        if saved.status == BookingStatus.CONFIRMED and self.schedule_service:
            run_at = datetime.combine(
                saved.check_out, time(hour=self.checkout_hour_utc), tzinfo=timezone.utc
            )
            try:
                self.schedule_service.schedule_completion(saved.booking_id, run_at)
            except Exception:
                logger.exception(
                    f"Could not schedule completion for {saved.booking_id}; "
                    "re-run complete_stay once the stay ends"
                )
        return saved

    def transition(
        self,
        booking_id: str,
        event: BookingEvent,
        actor_id: str,
        reason: Optional[str] = None,
    ) -> Booking:
        booking = self.get_booking_record(booking_id)
        role = resolve_actor_role(booking, actor_id)
        if role is None:
            raise Unauthorized("only the guest or host may change this booking")
        if event not in USER_EVENTS:
            raise Unauthorized(f"{event.value} is not a user action")
        return self._apply(booking, event, role, reason=reason)

    def settle_payment(self, booking_id: str, transaction_ref: Optional[str] = None) -> Booking:
        booking = self.get_booking_record(booking_id)
        if booking.status in ACTIVE_HOLD_STATUSES:
            return booking

        try:
            return self._apply(
                booking,
                BookingEvent.SETTLE_PAYMENT,
                ActorRole.PAYMENT_PROVIDER,
                transaction_ref=transaction_ref,
            )
        except DatesUnavailable:
            logger.warning(
                f"Booking {booking_id} settled after its dates were taken; cancelling for refund"
            )
            self._apply(
                booking,
                BookingEvent.SETTLEMENT_CONFLICT,
                ActorRole.PAYMENT_PROVIDER,
                transaction_ref=transaction_ref,
            )
            raise

    def complete_stay(self, booking_id: str) -> Booking:
        booking = self.get_booking_record(booking_id)
        if booking.status != BookingStatus.CONFIRMED:
            logger.info(
                f"Skipping completion of {booking_id}: status {booking.status.value}"
            )
            return booking
        return self._apply(booking, BookingEvent.COMPLETE, ActorRole.SCHEDULER)

    def expire_reservation(self, booking_id: str) -> Booking:
        booking = self.get_booking_record(booking_id)
        if booking.status != BookingStatus.PENDING_PAYMENT:
            logger.info(f"Skipping expiry of {booking_id}: status {booking.status.value}")
            return booking
        if utc_now() < booking.booked_at + self.payment_window:
            raise InvalidTransition(f"payment window for {booking_id} is still open")
        return self._apply(booking, BookingEvent.EXPIRE, ActorRole.SCHEDULER)
