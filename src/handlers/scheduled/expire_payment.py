import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.services.payment_service import PaymentService
from common.utils.config import env_int, payment_provider_from_env, scheduler_from_env
from common.utils.constants import DEFAULT_CHECKOUT_HOUR_UTC, DEFAULT_PAYMENT_WINDOW_MINUTES
from common.utils.custom_exceptions import (
    DatesUnavailable,
    InvalidTransition,
    NotFoundException,
    UpstreamPaymentError,
)

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
    payment_window_minutes=env_int("PAYMENT_WINDOW_MINUTES", DEFAULT_PAYMENT_WINDOW_MINUTES),
    checkout_hour_utc=env_int("CHECKOUT_HOUR_UTC", DEFAULT_CHECKOUT_HOUR_UTC),
)
payment_service = PaymentService(
    booking_repo=booking_repo,
    booking_service=booking_service,
    provider=payment_provider_from_env(),
)


def expire_payment(event, context):
    booking_id = event.get("booking_id")
    if not booking_id:
        raise KeyError("Missing booking_id in event")

    try:
        booking = payment_service.expire_or_settle(booking_id)
        logger.info(f"Booking {booking_id} is {booking.status.value}")
        return {"booking_id": booking_id, "status": booking.status.value}
    except NotFoundException as err:
        logger.error(f"Payment expiry failed: {err}")
    except InvalidTransition as err:
        logger.warning(f"Payment expiry skipped: {err}")
    except DatesUnavailable as err:
        logger.warning(f"Late settlement for {booking_id} lost its dates: {err}")
    except (UpstreamPaymentError, ClientError) as err:
        logger.exception(f"Payment expiry failed: {err}")
        raise
