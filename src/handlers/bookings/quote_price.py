import logging
import os
from boto3 import resource
from pydantic import ValidationError

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.schemas.bookings import StayRequest, pricing_to_dict
from common.utils.config import fee_policy_from_env
from common.utils.custom_exceptions import BookingValidationError, NotFoundException
from common.utils.custom_response import send_custom_response
from common.utils.refund_messages import get_cancellation_policy_message

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    unit_repo=UnitRepository(table),
    fee_policy=fee_policy_from_env(),
)


def quote_price(event, context):
    unit_id = (event.get("pathParameters") or {}).get("unit_id")
    if not unit_id:
        return send_custom_response(400, "unit_id is required in the path")

    try:
        query = StayRequest.model_validate(event.get("queryStringParameters") or {})
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    try:
        unit = booking_service.get_unit(unit_id)
        pricing = booking_service.quote_price(
            unit_id, query.check_in, query.check_out, query.occupancy
        )
        return send_custom_response(
            200,
            "Price calculated successfully",
            {
                "pricing": pricing_to_dict(pricing),
                "cancellation_policy": get_cancellation_policy_message(
                    unit.cancellation_policy
                ),
            },
        )

    except BookingValidationError as err:
        return send_custom_response(400, str(err))

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
