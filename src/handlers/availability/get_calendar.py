import logging
import os
from boto3 import resource
from pydantic import ValidationError

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.availability_service import AvailabilityService
from common.services.booking_service import BookingService
from common.schemas.availability import CalendarQuery, calendar_to_list, ranges_to_list
from common.utils.custom_exceptions import BookingValidationError, NotFoundException
from common.utils.custom_response import send_custom_response

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
availability_service = AvailabilityService(booking_repo)
booking_service = BookingService(
    booking_repo=booking_repo,
    unit_repo=UnitRepository(table),
    availability_service=availability_service,
)


def get_calendar(event, context):
    unit_id = (event.get("pathParameters") or {}).get("unit_id")
    if not unit_id:
        return send_custom_response(400, "unit_id is required in the path")

    try:
        query = CalendarQuery.model_validate(event.get("queryStringParameters") or {})
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    try:
        months = booking_service.get_calendar(unit_id, query.months)
        ranges = availability_service.get_available_ranges(unit_id, query.days_ahead)
        return send_custom_response(
            200,
            "Calendar retrieved successfully",
            {
                "calendar": calendar_to_list(months),
                "available_ranges": ranges_to_list(ranges),
            },
        )

    except BookingValidationError as err:
        return send_custom_response(400, str(err))

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
