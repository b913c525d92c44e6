import logging
import os
from boto3 import resource
from pydantic import ValidationError

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.services.pricing_service import current_season
from common.schemas.availability import conflicts_to_list
from common.schemas.bookings import StayRequest, pricing_to_dict
from common.utils.config import fee_policy_from_env
from common.utils.custom_exceptions import BookingValidationError, NotFoundException
from common.utils.custom_response import send_custom_response

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
unit_repo = UnitRepository(table)
booking_service = BookingService(
    booking_repo=booking_repo,
    unit_repo=unit_repo,
    fee_policy=fee_policy_from_env(),
)


def check_availability(event, context):
    unit_id = (event.get("pathParameters") or {}).get("unit_id")
    if not unit_id:
        return send_custom_response(400, "unit_id is required in the path")

    try:
        query = StayRequest.model_validate(event.get("queryStringParameters") or {})
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    try:
        result = booking_service.check_availability(unit_id, query.check_in, query.check_out)
        data = {
            "available": result.available,
            "conflicts": conflicts_to_list(result.conflicts),
        }
        if not result.available:
            return send_custom_response(200, "Selected dates are not available", data)

        try:
            pricing = booking_service.quote_price(
                unit_id, query.check_in, query.check_out, query.occupancy
            )
        except BookingValidationError as err:
            data["available"] = False
            return send_custom_response(200, str(err), data)

        season = current_season()
        data["pricing"] = pricing_to_dict(pricing)
        data["current_season"] = {
            "key": season.key,
            "name": season.name,
            "multiplier": season.multiplier,
        }
        return send_custom_response(200, "Dates are available", data)

    except BookingValidationError as err:
        return send_custom_response(400, str(err))

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
