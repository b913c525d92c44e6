import logging
from dataclasses import replace

from common.models.bookings import (
    Booking,
    BookingStatus,
    CancelledBy,
    PaymentStatus,
    RefundStatus,
)
from common.models.payments import ChargeSession
from common.models.users import Customer
from common.repository.booking_repo import BookingRepository
from common.services.booking_service import BookingService
from common.services.payment_provider import PaymentProvider
from common.utils.custom_exceptions import (
    DatesUnavailable,
    InvalidTransition,
    Unauthorized,
    UpstreamPaymentError,
)
from common.utils.datetime_normaliser import utc_now

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        booking_service: BookingService,
        provider: PaymentProvider,
    ):
        self.booking_repo = booking_repo
        self.booking_service = booking_service
        self.provider = provider

    def _require_provider(self):
        if self.provider is None:
            raise UpstreamPaymentError("no payment provider configured")

    def initiate_payment(
        self, booking_id: str, actor_id: str, customer: Customer
    ) -> ChargeSession:
        self._require_provider()
        booking = self.booking_service.get_booking_record(booking_id)

        if actor_id != booking.guest_id:
            raise Unauthorized("only the guest can pay for a booking")

        if booking.status != BookingStatus.PENDING_PAYMENT:
            raise InvalidTransition(
                f"cannot pay for a booking in status {booking.status.value}"
            )

        # reuse the open session instead of creating a second charge
        if booking.payment.provider_order_id and booking.payment.client_session_token:
            return ChargeSession(
                provider_order_id=booking.payment.provider_order_id,
                client_session_token=booking.payment.client_session_token,
            )

        session = self.provider.create_charge(
            booking_id=booking.booking_id,
            amount=booking.pricing.total,
            currency=booking.pricing.currency,
            customer=customer,
        )

        updated = replace(
            booking,
            payment=replace(
                booking.payment,
                provider=self.provider.name,
                provider_order_id=session.provider_order_id,
                client_session_token=session.client_session_token,
                status=PaymentStatus.PENDING,
            ),
            updated_at=utc_now(),
        )
        self.booking_repo.save_booking(booking, updated)
        logger.info(f"Payment session {session.provider_order_id} opened for {booking_id}")
        return session

    def confirm_payment(self, booking_id: str) -> Booking:
        """Ask the provider whether the charge settled and advance the booking if so."""
        self._require_provider()
        booking = self.booking_service.get_booking_record(booking_id)

        if booking.payment.status == PaymentStatus.PAID:
            return booking
        if _expired_with_open_charge(booking):
            return self._refund_late_settlement(booking)
        if booking.status != BookingStatus.PENDING_PAYMENT:
            raise InvalidTransition(
                f"cannot settle a booking in status {booking.status.value}"
            )
        if not booking.payment.provider_order_id:
            raise InvalidTransition(f"booking {booking_id} has no payment session")

        status = self.provider.query_charge_status(booking.payment.provider_order_id)
        if not status.settled:
            logger.info(
                f"Charge {booking.payment.provider_order_id} not settled "
                f"({status.provider_status or 'unknown'})"
            )
            return booking

        try:
            return self.booking_service.settle_payment(booking_id, status.transaction_ref)
        except DatesUnavailable:
            cancelled = self.booking_service.get_booking_record(booking_id)
            self.refund_if_due(cancelled)
            raise

    def _refund_late_settlement(self, booking: Booking) -> Booking:
        status = self.provider.query_charge_status(booking.payment.provider_order_id)
        if not status.settled:
            raise InvalidTransition(
                f"cannot settle a booking in status {booking.status.value}"
            )

        logger.warning(
            f"Charge {booking.payment.provider_order_id} settled after booking "
            f"{booking.booking_id} expired; refunding in full"
        )
        now = utc_now()
        updated = replace(
            booking,
            payment=replace(
                booking.payment,
                status=PaymentStatus.PAID,
                paid_at=now,
                transaction_ref=status.transaction_ref or booking.payment.provider_order_id,
            ),
            cancellation=replace(
                booking.cancellation,
                refund_status=RefundStatus.PENDING,
                refund_amount=booking.pricing.total,
            ),
            updated_at=now,
        )
        saved = self.booking_repo.save_booking(booking, updated)
        return self.refund_if_due(saved)

    def initiate_refund(self, booking: Booking) -> Booking:
        self._require_provider()
        cancellation = booking.cancellation
        if cancellation is None or cancellation.refund_status != RefundStatus.PENDING:
            return booking

        refund_ref = self.provider.refund(booking.booking_id, cancellation.refund_amount)
        updated = replace(
            booking,
            cancellation=replace(
                cancellation, refund_status=RefundStatus.PROCESSING, refund_ref=refund_ref
            ),
            updated_at=utc_now(),
        )
        saved = self.booking_repo.save_booking(booking, updated)
        logger.info(f"Refund {refund_ref} started for booking {booking.booking_id}")
        return saved

    def refund_if_due(self, booking: Booking) -> Booking:
        """Refund once a cancellation is already stored.

        The cancellation stands on its own; a failed refund stays ``pending``
        and is retried through ``initiate_refund``.
        """
        try:
            return self.initiate_refund(booking)
        except UpstreamPaymentError:
            logger.exception(f"Refund for booking {booking.booking_id} left pending")
            return booking

    def expire_or_settle(self, booking_id: str) -> Booking:
        booking = self.booking_service.get_booking_record(booking_id)
        if booking.status != BookingStatus.PENDING_PAYMENT:
            return booking

        if self.provider is not None and booking.payment.provider_order_id:
            status = self.provider.query_charge_status(booking.payment.provider_order_id)
            if status.settled:
                logger.info(f"Booking {booking_id} settled late; settling instead of expiring")
                return self.confirm_payment(booking_id)

        return self.booking_service.expire_reservation(booking_id)


def _expired_with_open_charge(booking: Booking) -> bool:
    cancellation = booking.cancellation
    return (
        booking.status == BookingStatus.CANCELLED
        and cancellation is not None
        and cancellation.cancelled_by == CancelledBy.SYSTEM
        and cancellation.refund_status == RefundStatus.NONE
        and bool(booking.payment.provider_order_id)
    )
