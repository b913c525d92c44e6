import logging
import os
from boto3 import resource
from pydantic import ValidationError

from common.models.bookings import RefundStatus
from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.services.payment_service import PaymentService
from common.schemas.availability import conflicts_to_list
from common.schemas.bookings import TransitionRequest, booking_to_dict
from common.utils.config import env_int, payment_provider_from_env, scheduler_from_env
from common.utils.constants import DEFAULT_CHECKOUT_HOUR_UTC
from common.utils.custom_exceptions import (
    BookingConflict,
    DatesUnavailable,
    InvalidTransition,
    NotFoundException,
    Unauthorized,
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


def transition_booking(event, context):
    try:
        actor_id = event["requestContext"]["authorizer"]["user_id"]
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    booking_id = (event.get("pathParameters") or {}).get("booking_id")
    if not booking_id:
        return send_custom_response(400, "booking_id is required in the path")

    if not event.get("body"):
        return send_custom_response(400, "Request body is required")

    try:
        request_body = TransitionRequest.model_validate_json(event["body"])
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    try:
        booking = booking_service.transition(
            booking_id, request_body.event, actor_id, reason=request_body.reason
        )

        if (
            booking.cancellation
            and booking.cancellation.refund_status == RefundStatus.PENDING
        ):
            booking = payment_service.refund_if_due(booking)

        return send_custom_response(
            200,
            f"Booking {request_body.event.value} applied",
            booking_to_dict(booking),
        )

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Unauthorized as err:
        return send_custom_response(403, str(err))

    except (InvalidTransition, BookingConflict) as err:
        return send_custom_response(409, str(err))

    except DatesUnavailable as err:
        return send_custom_response(
            409, str(err), {"conflicts": conflicts_to_list(err.conflicts)}
        )

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
