from botocore.exceptions import ClientError
import logging
from typing import Optional, List
from boto3.dynamodb.conditions import Key
from common.models.availability import ConflictingBooking
from common.models.bookings import (
    Booking,
    BookingStatus,
    BookingSummary,
    Cancellation,
    CancelledBy,
    NightlyRate,
    Occupancy,
    PaymentInfo,
    PaymentStatus,
    PricingSnapshot,
    RefundStatus,
    ACTIVE_HOLD_STATUSES,
)
from common.models.units import PricingUnit
from common.utils.custom_exceptions import BookingConflict, DatesUnavailable
from common.utils.datetime_normaliser import from_iso_string, iter_nights, to_iso_string
from dataclasses import replace
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)

CONDITION_FAILED = "ConditionalCheckFailed"
TRANSACTION_CONFLICT = "TransactionConflict"

# TransactItems ordering used by every booking write
DETAILS_INDEX = 0
NIGHTS_OFFSET = 4


def _booking_key(booking_id: str) -> dict:
    return {"pk": f"BOOKING#{booking_id}", "sk": "DETAILS"}


def _guest_key(booking: Booking) -> dict:
    return {"pk": f"GUEST#{booking.guest_id}", "sk": f"BOOKING#{booking.booking_id}"}


def _host_key(booking: Booking) -> dict:
    return {"pk": f"HOST#{booking.host_id}", "sk": f"BOOKING#{booking.booking_id}"}


def _stay_key(booking: Booking) -> dict:
    return {
        "pk": f"UNIT#{booking.unit_id}",
        "sk": f"STAY#{booking.check_in.isoformat()}#{booking.booking_id}",
    }


def _night_key(unit_id: str, night: date) -> dict:
    return {"pk": f"UNIT#{unit_id}", "sk": f"NIGHT#{night.isoformat()}"}


def _cancellation_reasons(err: ClientError) -> List[str]:
    return [
        reason.get("Code", "None")
        for reason in err.response.get("CancellationReasons", [])
    ]


class BookingRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    @staticmethod
    def _iso(dt: datetime | str) -> str:
        if isinstance(dt, str):
            dt = datetime.fromisoformat(dt)
        return to_iso_string(dt)

    @staticmethod
    def _lock_expiry(check_out: date) -> int:
        return int(datetime.combine(check_out, time(), tzinfo=timezone.utc).timestamp())

    # -------------------------
    # item mapping
    # -------------------------
    def _pricing_item(self, pricing: PricingSnapshot) -> dict:
        return {
            "nightly_rate": pricing.nightly_rate,
            "nights": pricing.nights,
            "pricing_unit": pricing.pricing_unit.value,
            "base_price": pricing.base_price,
            "average_multiplier": pricing.average_multiplier,
            "seasonal_adjustment": pricing.seasonal_adjustment,
            "subtotal": pricing.subtotal,
            "cleaning_fee": pricing.cleaning_fee,
            "service_fee": pricing.service_fee,
            "total": pricing.total,
            "currency": pricing.currency,
            "breakdown": [
                {
                    "date": night.date.isoformat(),
                    "rate": night.rate,
                    "season_name": night.season_name,
                    "multiplier": night.multiplier,
                }
                for night in pricing.breakdown
            ],
        }

    def _payment_item(self, payment: PaymentInfo) -> dict:
        return {
            "provider": payment.provider,
            "provider_order_id": payment.provider_order_id,
            "client_session_token": payment.client_session_token,
            "status": payment.status.value,
            "paid_at": self._iso(payment.paid_at) if payment.paid_at else None,
            "transaction_ref": payment.transaction_ref,
        }

    def _cancellation_item(self, cancellation: Optional[Cancellation]) -> Optional[dict]:
        if cancellation is None:
            return None
        return {
            "cancelled_by": cancellation.cancelled_by.value,
            "cancelled_at": self._iso(cancellation.cancelled_at),
            "reason": cancellation.reason,
            "refund_status": cancellation.refund_status.value,
            "refund_amount": cancellation.refund_amount,
            "refund_ref": cancellation.refund_ref,
        }

    def _summary_item(self, booking: Booking, key: dict) -> dict:
        return {
            **key,
            "booking_id": booking.booking_id,
            "unit_id": booking.unit_id,
            "check_in": booking.check_in.isoformat(),
            "check_out": booking.check_out.isoformat(),
            "booking_status": booking.status.value,
            "total": booking.pricing.total,
        }

    def _details_item(self, booking: Booking) -> dict:
        return {
            **_booking_key(booking.booking_id),
            "booking_id": booking.booking_id,
            "unit_id": booking.unit_id,
            "guest_id": booking.guest_id,
            "host_id": booking.host_id,
            "check_in": booking.check_in.isoformat(),
            "check_out": booking.check_out.isoformat(),
            "adults": booking.occupancy.adults,
            "children": booking.occupancy.children,
            "infants": booking.occupancy.infants,
            "pricing": self._pricing_item(booking.pricing),
            "booking_status": booking.status.value,
            "payment": self._payment_item(booking.payment),
            "cancellation": self._cancellation_item(booking.cancellation),
            "guest_message": booking.guest_message,
            "host_response": booking.host_response,
            "version": booking.version,
            "booked_at": self._iso(booking.booked_at),
            "updated_at": self._iso(booking.updated_at),
        }

    @staticmethod
    def _to_domain(item: dict) -> Booking:
        pricing = item["pricing"]
        payment = item.get("payment") or {}
        cancellation = item.get("cancellation")

        return Booking(
            booking_id=item["booking_id"],
            unit_id=item["unit_id"],
            guest_id=item["guest_id"],
            host_id=item["host_id"],
            check_in=date.fromisoformat(item["check_in"]),
            check_out=date.fromisoformat(item["check_out"]),
            occupancy=Occupancy(
                adults=int(item["adults"]),
                children=int(item.get("children", 0)),
                infants=int(item.get("infants", 0)),
            ),
            pricing=PricingSnapshot(
                nightly_rate=pricing["nightly_rate"],
                nights=int(pricing["nights"]),
                base_price=pricing["base_price"],
                average_multiplier=pricing["average_multiplier"],
                seasonal_adjustment=pricing["seasonal_adjustment"],
                subtotal=pricing["subtotal"],
                service_fee=pricing["service_fee"],
                total=pricing["total"],
                breakdown=tuple(
                    NightlyRate(
                        date=date.fromisoformat(night["date"]),
                        rate=night["rate"],
                        season_name=night["season_name"],
                        multiplier=night["multiplier"],
                    )
                    for night in pricing.get("breakdown", [])
                ),
                cleaning_fee=pricing.get("cleaning_fee", Decimal("0")),
                pricing_unit=PricingUnit(pricing.get("pricing_unit", "night")),
                currency=pricing.get("currency", "INR"),
            ),
            status=BookingStatus(item["booking_status"]),
            payment=PaymentInfo(
                provider=payment.get("provider"),
                provider_order_id=payment.get("provider_order_id"),
                client_session_token=payment.get("client_session_token"),
                status=PaymentStatus(payment.get("status", "pending")),
                paid_at=(
                    from_iso_string(payment["paid_at"]) if payment.get("paid_at") else None
                ),
                transaction_ref=payment.get("transaction_ref"),
            ),
            cancellation=(
                Cancellation(
                    cancelled_by=CancelledBy(cancellation["cancelled_by"]),
                    cancelled_at=from_iso_string(cancellation["cancelled_at"]),
                    reason=cancellation["reason"],
                    refund_status=RefundStatus(cancellation["refund_status"]),
                    refund_amount=cancellation.get("refund_amount", Decimal("0")),
                    refund_ref=cancellation.get("refund_ref"),
                )
                if cancellation
                else None
            ),
            guest_message=item.get("guest_message"),
            host_response=item.get("host_response"),
            version=int(item["version"]),
            booked_at=from_iso_string(item["booked_at"]),
            updated_at=from_iso_string(item["updated_at"]),
        )

    @staticmethod
    def _to_summary(item: dict) -> BookingSummary:
        return BookingSummary(
            booking_id=item["booking_id"],
            unit_id=item["unit_id"],
            check_in=date.fromisoformat(item["check_in"]),
            check_out=date.fromisoformat(item["check_out"]),
            status=BookingStatus(item["booking_status"]),
            total=item["total"],
        )

    # -------------------------
    # transaction helpers
    # -------------------------
    def _night_checks(self, booking: Booking) -> List[dict]:
        return [
            {
                "ConditionCheck": {
                    "TableName": self.table.name,
                    "Key": _night_key(booking.unit_id, night),
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            }
            for night in iter_nights(booking.check_in, booking.check_out)
        ]

    def _night_locks(self, booking: Booking) -> List[dict]:
        return [
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {
                        **_night_key(booking.unit_id, night),
                        "booking_id": booking.booking_id,
                        "check_in": booking.check_in.isoformat(),
                        "check_out": booking.check_out.isoformat(),
                        "ttl_attribute": self._lock_expiry(booking.check_out),
                    },
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            }
            for night in iter_nights(booking.check_in, booking.check_out)
        ]

    def _night_releases(self, booking: Booking) -> List[dict]:
        return [
            {
                "Delete": {
                    "TableName": self.table.name,
                    "Key": _night_key(booking.unit_id, night),
                    "ConditionExpression": "attribute_not_exists(pk) OR booking_id = :booking_id",
                    "ExpressionAttributeValues": {":booking_id": booking.booking_id},
                }
            }
            for night in iter_nights(booking.check_in, booking.check_out)
        ]

    def _status_update(self, key: dict, status: BookingStatus) -> dict:
        return {
            "Update": {
                "TableName": self.table.name,
                "Key": key,
                "UpdateExpression": "SET #booking_status = :new_value",
                "ExpressionAttributeNames": {"#booking_status": "booking_status"},
                "ExpressionAttributeValues": {":new_value": status.value},
                "ConditionExpression": "attribute_exists(pk)",
            }
        }

    def _raise_for_cancellation(self, err: ClientError, booking: Booking, conflict_msg: str):
        reasons = _cancellation_reasons(err)
        if not reasons:
            logger.error(f"Error writing booking {booking.booking_id}: {err}")
            raise err
        if len(reasons) > NIGHTS_OFFSET and CONDITION_FAILED in reasons[NIGHTS_OFFSET:]:
            logger.info(
                f"Night lock taken on unit {booking.unit_id} for booking {booking.booking_id}"
            )
            raise DatesUnavailable(
                "Selected dates are no longer available"
            ) from err
        if TRANSACTION_CONFLICT in reasons:
            logger.info(f"Concurrent write lost for booking {booking.booking_id}")
            raise BookingConflict(
                f"booking {booking.booking_id} collided with a concurrent write, retry"
            ) from err
        if reasons[DETAILS_INDEX] == CONDITION_FAILED:
            logger.info(f"Condition failed on booking {booking.booking_id}")
            raise BookingConflict(conflict_msg) from err
        logger.error(f"Error writing booking {booking.booking_id}: {err}")
        raise err

    # -------------------------
    # writes
    # -------------------------
    def add_booking(self, booking: Booking):
        """Insert a new booking.

        The insert carries a ConditionCheck on every night lock of the stay, so
        it fails as a whole if any of those nights became an active hold after
        the availability check.
        """
        items = [
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": self._details_item(booking),
                    "ConditionExpression": "attribute_not_exists(pk)",
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": self._summary_item(booking, _guest_key(booking)),
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": self._summary_item(booking, _host_key(booking)),
                }
            },
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {
                        **_stay_key(booking),
                        "booking_id": booking.booking_id,
                        "guest_id": booking.guest_id,
                        "check_in": booking.check_in.isoformat(),
                        "check_out": booking.check_out.isoformat(),
                        "booking_status": booking.status.value,
                    },
                }
            },
        ]
        items.extend(self._night_checks(booking))

        try:
            self.client.transact_write_items(TransactItems=items)
        except ClientError as err:
            if err.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                self._raise_for_cancellation(
                    err, booking, f"booking {booking.booking_id} already exists"
                )
            logger.error(f"Error creating booking {booking.booking_id}: {err}")
            raise

    def save_booking(self, previous: Booking, updated: Booking) -> Booking:
        """Persist ``updated`` if the stored booking still equals ``previous``.

        Compare-and-swap on version and status. Moving into an active hold
        acquires the night locks of the stay; leaving one for a cancelled or
        rejected state releases them, all in the same transaction.
        """
        stored = replace(updated, version=previous.version + 1)
        details = self._details_item(stored)
        settable = {
            k: v for k, v in details.items() if k in (
                "booking_status", "payment", "cancellation", "host_response", "updated_at",
            )
        }
        names = {f"#{k}": k for k in settable}
        names["#version"] = "version"
        values = {f":{k}": v for k, v in settable.items()}
        values[":next_version"] = stored.version
        values[":expected_version"] = previous.version
        values[":expected_status"] = previous.status.value

        items = [
            {
                "Update": {
                    "TableName": self.table.name,
                    "Key": _booking_key(previous.booking_id),
                    "UpdateExpression": "SET "
                    + ", ".join(f"#{k} = :{k}" for k in settable)
                    + ", #version = :next_version",
                    "ExpressionAttributeNames": names,
                    "ExpressionAttributeValues": values,
                    "ConditionExpression": (
                        "#version = :expected_version AND "
                        "#booking_status = :expected_status"
                    ),
                }
            }
        ]

        if previous.status != stored.status:
            items.append(self._status_update(_guest_key(stored), stored.status))
            items.append(self._status_update(_host_key(stored), stored.status))
            items.append(self._status_update(_stay_key(stored), stored.status))

            was_active = previous.status in ACTIVE_HOLD_STATUSES
            is_active = stored.status in ACTIVE_HOLD_STATUSES
            if is_active and not was_active:
                items.extend(self._night_locks(stored))
            elif was_active and stored.status in (
                BookingStatus.CANCELLED,
                BookingStatus.REJECTED,
            ):
                items.extend(self._night_releases(stored))

        try:
            self.client.transact_write_items(TransactItems=items)
        except ClientError as err:
            if err.response.get("Error", {}).get("Code") == "TransactionCanceledException":
                self._raise_for_cancellation(
                    err,
                    stored,
                    f"booking {stored.booking_id} was modified concurrently, reload and retry",
                )
            logger.error(f"Error updating booking {stored.booking_id}: {err}")
            raise

        return stored

    # -------------------------
    # reads
    # -------------------------
    def get_booking_by_id(self, booking_id: str) -> Optional[Booking]:
        try:
            response = self.table.get_item(
                Key=_booking_key(booking_id), ConsistentRead=True
            )
        except ClientError as err:
            logger.error(f"Error retrieving booking {booking_id}: {err}")
            raise

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(item)

    def _query_all(self, **kwargs) -> List[dict]:
        items = []
        resp = self.table.query(**kwargs)
        items.extend(resp.get("Items", []))
        while "LastEvaluatedKey" in resp:
            resp = self.table.query(**kwargs, ExclusiveStartKey=resp["LastEvaluatedKey"])
            items.extend(resp.get("Items", []))
        return items

    def _get_summaries(self, prefix: str, owner_id: str) -> List[BookingSummary]:
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(f"{prefix}#{owner_id}")
                & Key("sk").begins_with("BOOKING#")
            )
        except ClientError as err:
            logger.error(f"Error retrieving {prefix.lower()} {owner_id} bookings: {err}")
            raise
        return [self._to_summary(item) for item in items]

    def get_guest_bookings(self, guest_id: str) -> List[BookingSummary]:
        return self._get_summaries("GUEST", guest_id)

    def get_host_bookings(self, host_id: str) -> List[BookingSummary]:
        return self._get_summaries("HOST", host_id)

    def get_unit_stays(
        self, unit_id: str, start: date, end: date
    ) -> List[ConflictingBooking]:
        """Stays of a unit whose check-in is in [start, end), any status."""
        try:
            items = self._query_all(
                KeyConditionExpression=(
                    Key("pk").eq(f"UNIT#{unit_id}")
                    & Key("sk").between(
                        f"STAY#{start.isoformat()}",
                        f"STAY#{end.isoformat()}",
                    )
                ),
                ConsistentRead=True,
            )
        except ClientError as err:
            logger.error(
                f"Error retrieving stays for unit {unit_id} between {start} and {end}: {err}"
            )
            raise

        return [
            ConflictingBooking(
                booking_id=item["booking_id"],
                check_in=date.fromisoformat(item["check_in"]),
                check_out=date.fromisoformat(item["check_out"]),
                status=BookingStatus(item["booking_status"]),
            )
            for item in items
        ]
