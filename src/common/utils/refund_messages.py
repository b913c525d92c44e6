from typing import Optional

from common.models.bookings import Booking, BookingStatus, CancelledBy, RefundStatus
from common.models.units import CancellationPolicy

REFUND_WINDOW = "Your payment will be refunded within 24 working hours."

REFUND_MESSAGES = {
    "guest_cancelled": {
        "title": "Booking Cancelled",
        "message": f"Your booking has been cancelled. {REFUND_WINDOW}",
    },
    "host_cancelled": {
        "title": "Host Cancelled Booking",
        "message": "The host has cancelled your booking. Your full payment will be "
        "refunded within 24 working hours.",
    },
    "host_rejected": {
        "title": "Booking Request Declined",
        "message": f"The host was unable to accept your booking request. {REFUND_WINDOW}",
    },
    "system_cancelled": {
        "title": "Dates No Longer Available",
        "message": f"These dates were booked before your payment completed. {REFUND_WINDOW}",
    },
    "refund_processing": {
        "title": "Refund Processing",
        "message": "Your refund is being processed and will be credited to your "
        "account within 24 working hours.",
    },
    "refund_completed": {
        "title": "Refund Completed",
        "message": "Your refund has been processed successfully.",
    },
}

CANCELLATION_POLICIES = {
    CancellationPolicy.FLEXIBLE: "Free cancellation up to 24 hours before check-in. "
    "Full refund minus service fee.",
    CancellationPolicy.MODERATE: "Free cancellation up to 5 days before check-in. "
    "50% refund for cancellations up to 24 hours before.",
    CancellationPolicy.STRICT: "50% refund up to 7 days before check-in. "
    "No refund within 7 days of check-in.",
}


def get_refund_message(booking: Booking) -> Optional[dict]:
    cancellation = booking.cancellation
    if cancellation is None:
        return None

    if cancellation.refund_status == RefundStatus.COMPLETED:
        return REFUND_MESSAGES["refund_completed"]
    if cancellation.refund_status == RefundStatus.PROCESSING:
        return REFUND_MESSAGES["refund_processing"]
    # an expired reservation was never paid, there is nothing to refund
    if cancellation.refund_status == RefundStatus.NONE:
        return None

    if booking.status == BookingStatus.REJECTED:
        return REFUND_MESSAGES["host_rejected"]
    if cancellation.cancelled_by == CancelledBy.HOST:
        return REFUND_MESSAGES["host_cancelled"]
    if cancellation.cancelled_by == CancelledBy.GUEST:
        return REFUND_MESSAGES["guest_cancelled"]
    return REFUND_MESSAGES["system_cancelled"]


def get_cancellation_policy_message(policy: Optional[CancellationPolicy]) -> str:
    return CANCELLATION_POLICIES.get(policy, CANCELLATION_POLICIES[CancellationPolicy.MODERATE])
