import logging
import os
from boto3 import resource

from common.models.bookings import Booking, RefundStatus
from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.services.payment_service import PaymentService
from common.schemas.bookings import booking_to_dict
from common.utils.config import env_int, payment_provider_from_env, scheduler_from_env
from common.utils.constants import DEFAULT_CHECKOUT_HOUR_UTC
from common.utils.custom_exceptions import (
    BookingConflict,
    DatesUnavailable,
    InvalidTransition,
    NotFoundException,
    UpstreamPaymentError,
)
from common.utils.custom_response import send_custom_response

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
booking_service = BookingService(
    booking_repo=booking_repo,
    unit_repo=UnitRepository(table),
    schedule_service=scheduler_from_env(),
    checkout_hour_utc=env_int("CHECKOUT_HOUR_UTC", DEFAULT_CHECKOUT_HOUR_UTC),
)
payment_service = PaymentService(
    booking_repo=booking_repo,
    booking_service=booking_service,
    provider=payment_provider_from_env(),
)


def payment_return(event, context):
    """Provider redirect/webhook: verify the charge and settle the booking."""
    params = event.get("queryStringParameters") or {}
    booking_id = params.get("booking_id") or (event.get("pathParameters") or {}).get(
        "booking_id"
    )
    if not booking_id:
        return send_custom_response(400, "booking_id is required")

    try:
        booking = payment_service.confirm_payment(booking_id)
        return send_custom_response(
            200, "Payment status checked", booking_to_dict(booking)
        )

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except DatesUnavailable:
        try:
            booking = booking_service.get_booking_record(booking_id)
        except Exception:
            logger.exception(f"Could not reload booking {booking_id} after losing its dates")
            return send_custom_response(409, "Dates were taken before payment completed")
        return send_custom_response(409, _lost_dates_message(booking), booking_to_dict(booking))

    except (InvalidTransition, BookingConflict) as err:
        return send_custom_response(409, str(err))

    except UpstreamPaymentError as err:
        logger.exception(f"Payment provider failed for {booking_id}")
        return send_custom_response(502, str(err))

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")


def _lost_dates_message(booking: Booking) -> str:
    refund_status = booking.cancellation.refund_status if booking.cancellation else None
    if refund_status in (RefundStatus.PROCESSING, RefundStatus.COMPLETED):
        return "Dates were taken before payment completed; a refund has been initiated"
    return (
        "Dates were taken before payment completed; the refund is pending "
        "and will be retried"
    )
