import logging
import os
from boto3 import resource

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.schemas.bookings import summary_to_dict
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


def get_user_bookings(event, context):
    try:
        user_id = event["requestContext"]["authorizer"]["user_id"]
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    params = event.get("queryStringParameters") or {}
    view = params.get("as", "guest").lower()
    if view not in ("guest", "host"):
        return send_custom_response(400, "as must be 'guest' or 'host'")

    try:
        bookings = booking_service.list_bookings(user_id, as_host=view == "host")
        result = [summary_to_dict(b) for b in bookings]
        return send_custom_response(
            200,
            "Bookings retrieved successfully",
            {"count": len(result), "bookings": result},
        )

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
