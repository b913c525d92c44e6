from dataclasses import asdict
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from common.models.bookings import Booking, BookingSummary, Occupancy, PricingSnapshot
from common.services.booking_state_machine import BookingEvent, USER_EVENTS
from common.utils.refund_messages import get_refund_message


class StayRequest(BaseModel):
    check_in: date
    check_out: date
    adults: int = Field(default=1, ge=1)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_range(self):
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self

    @property
    def occupancy(self) -> Occupancy:
        return Occupancy(adults=self.adults, children=self.children, infants=self.infants)


class ReservationRequest(StayRequest):
    unit_id: str = Field(min_length=1)
    message: Optional[str] = Field(default=None, max_length=1000)


class TransitionRequest(BaseModel):
    event: BookingEvent
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("event")
    @classmethod
    def validate_event(cls, v: BookingEvent):
        if v not in USER_EVENTS:
            allowed = ", ".join(sorted(e.value for e in USER_EVENTS))
            raise ValueError(f"event must be one of: {allowed}")
        return v


class PaymentRequest(BaseModel):
    customer_name: str = "Guest"
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None


def pricing_to_dict(pricing: PricingSnapshot) -> dict:
    return asdict(pricing)


def booking_to_dict(booking: Booking) -> dict:
    data = asdict(booking)
    data["status"] = booking.status.value
    data["display_status"] = booking.display_status
    data["nights"] = booking.nights
    data["refund_message"] = get_refund_message(booking)
    # the session token is handed out by the payment endpoint only
    data["payment"].pop("client_session_token", None)
    return data


def summary_to_dict(summary: BookingSummary) -> dict:
    return {
        "booking_id": summary.booking_id,
        "unit_id": summary.unit_id,
        "check_in": summary.check_in,
        "check_out": summary.check_out,
        "status": summary.status.value,
        "total": summary.total,
    }
