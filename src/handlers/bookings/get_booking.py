import logging
import os
from boto3 import resource

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.schemas.bookings import booking_to_dict
from common.utils.custom_exceptions import NotFoundException, Unauthorized
from common.utils.custom_response import send_custom_response

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    unit_repo=UnitRepository(table),
)


def get_booking(event, context):
    try:
        user_id = event["requestContext"]["authorizer"]["user_id"]
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    booking_id = (event.get("pathParameters") or {}).get("booking_id")
    if not booking_id:
        return send_custom_response(400, "booking_id is required in the path")

    try:
        booking = booking_service.get_booking(booking_id, user_id)
        return send_custom_response(
            200, "Booking retrieved successfully", booking_to_dict(booking)
        )

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Unauthorized as err:
        return send_custom_response(403, str(err))

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
