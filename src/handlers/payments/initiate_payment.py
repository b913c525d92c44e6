import logging
import os
from boto3 import resource
from pydantic import ValidationError

from common.models.users import Customer
from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.services.payment_service import PaymentService
from common.schemas.bookings import PaymentRequest
from common.utils.config import payment_provider_from_env
from common.utils.custom_exceptions import (
    BookingConflict,
    InvalidTransition,
    NotFoundException,
    Unauthorized,
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
booking_service = BookingService(booking_repo=booking_repo, unit_repo=UnitRepository(table))
payment_service = PaymentService(
    booking_repo=booking_repo,
    booking_service=booking_service,
    provider=payment_provider_from_env(),
)


def initiate_payment(event, context):
    try:
        authorizer = event["requestContext"]["authorizer"]
        guest_id = authorizer["user_id"]
    except KeyError:
        return send_custom_response(401, "Unauthorized")

    booking_id = (event.get("pathParameters") or {}).get("booking_id")
    if not booking_id:
        return send_custom_response(400, "booking_id is required in the path")

    try:
        request_body = PaymentRequest.model_validate_json(event.get("body") or "{}")
    except ValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    customer = Customer(
        customer_id=guest_id,
        name=request_body.customer_name,
        email=request_body.customer_email or authorizer.get("email") or None,
        phone=request_body.customer_phone,
    )

    try:
        session = payment_service.initiate_payment(booking_id, guest_id, customer)
        return send_custom_response(
            200,
            "Payment session created",
            {
                "booking_id": booking_id,
                "provider_order_id": session.provider_order_id,
                "client_session_token": session.client_session_token,
            },
        )

    except NotFoundException as err:
        return send_custom_response(err.status_code, str(err))

    except Unauthorized as err:
        return send_custom_response(403, str(err))

    except (InvalidTransition, BookingConflict) as err:
        return send_custom_response(409, str(err))

    except UpstreamPaymentError as err:
        logger.exception(f"Payment provider failed for {booking_id}")
        return send_custom_response(502, str(err))

    except Exception as err:
        logger.exception(f"Unhandled error: {err}")
        return send_custom_response(500, "Internal server error")
