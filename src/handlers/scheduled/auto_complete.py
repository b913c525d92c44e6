import logging
import os
from boto3 import resource
from botocore.exceptions import ClientError

from common.repository.booking_repo import BookingRepository
from common.repository.unit_repo import UnitRepository
from common.services.booking_service import BookingService
from common.utils.custom_exceptions import InvalidTransition, NotFoundException

logger = logging.getLogger()
logger.setLevel(logging.INFO)

TABLE_NAME = os.environ.get("TABLE_NAME")
REGION = os.environ.get("AWS_REGION", "ap-south-1")

dynamodb = resource("dynamodb", region_name=REGION)
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table), unit_repo=UnitRepository(table)
)


def auto_complete(event, context):
    booking_id = event.get("booking_id")
    if not booking_id:
        raise KeyError("Missing booking_id in event")

    try:
        booking = booking_service.complete_stay(booking_id)
        logger.info(f"Booking {booking_id} is {booking.status.value}")
        return {"booking_id": booking_id, "status": booking.status.value}
    except NotFoundException as err:
        logger.error(f"Auto-complete failed: {err}")
    except InvalidTransition as err:
        # checkout day not reached yet; the schedule fired early
        logger.warning(f"Auto-complete skipped: {err}")
    except ClientError as err:
        logger.exception(f"Auto-complete failed: {err}")
        raise
