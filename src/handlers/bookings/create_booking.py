import logging
import os
from boto3 import resource
from pydantic import ValidationError

from common.repository.booking_repo import BookingRepository
from common.repository.rate_limit_repo import RateLimitRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.services.rate_limit_service import RateLimitService
from common.schemas.availability import conflicts_to_list
from common.schemas.bookings import ReservationRequest, booking_to_dict
from common.utils.config import env_int, fee_policy_from_env, scheduler_from_env
from common.utils.constants import (
    DEFAULT_PAYMENT_WINDOW_MINUTES,
    DEFAULT_RESERVE_COOLDOWN_SECONDS,
)
from common.utils.custom_exceptions import (
    BookingConflict,
    BookingValidationError,
    DatesUnavailable,
    NotFoundException,
    RateLimited,
)
from common.utils.custom_response import send_custom_response

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")
RESERVE_COOLDOWN_SECONDS = env_int(
    "RESERVE_COOLDOWN_SECONDS", DEFAULT_RESERVE_COOLDOWN_SECONDS
)

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    unit_repo=UnitRepository(table),
    fee_policy=fee_policy_from_env(),
    schedule_service=scheduler_from_env(),
    payment_window_minutes=env_int("PAYMENT_WINDOW_MINUTES", DEFAULT_PAYMENT_WINDOW_MINUTES),
    rate_limit_service=RateLimitService(RateLimitRepository(table)),
    reserve_cooldown_seconds=RESERVE_COOLDOWN_SECONDS,
)


def create_booking(event, context):
    if not event.get("body"):
        return send_custom_response(400, "Request body is required")

    try:
        request_body = ReservationRequest.model_validate_json(event["body"])
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    try:
        guest_id = event["requestContext"]["authorizer"]["user_id"]
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    try:
        booking = booking_service.reserve(
            unit_id=request_body.unit_id,
            guest_id=guest_id,
            check_in=request_body.check_in,
            check_out=request_body.check_out,
            occupancy=request_body.occupancy,
            message=request_body.message,
        )
        return send_custom_response(
            201, "Booking created successfully", booking_to_dict(booking)
        )

    except BookingValidationError as err:
        return send_custom_response(400, str(err))

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except DatesUnavailable as err:
        return send_custom_response(
            409, str(err), {"conflicts": conflicts_to_list(err.conflicts)}
        )

    except BookingConflict as err:
        return send_custom_response(409, str(err))

    except RateLimited as err:
        return send_custom_response(429, str(err), {"retry_after": err.retry_after})

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
