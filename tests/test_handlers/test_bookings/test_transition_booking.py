import importlib
import json
import os
import unittest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

from common.models.bookings import (
    Booking,
    BookingStatus,
    Cancellation,
    CancelledBy,
    Occupancy,
    PricingSnapshot,
    RefundStatus,
)
from common.services.booking_state_machine import BookingEvent
from common.utils.custom_exceptions import (
    BookingConflict,
    InvalidTransition,
    NotFoundException,
    Unauthorized,
)

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_booking(status, cancellation=None):
    return Booking(
        booking_id="b1",
        unit_id="unit1",
        guest_id="guest1",
        host_id="host1",
        check_in=date(2026, 3, 10),
        check_out=date(2026, 3, 12),
        occupancy=Occupancy(),
        pricing=PricingSnapshot(
            nightly_rate=Decimal("1000"),
            nights=2,
            base_price=Decimal("2000"),
            average_multiplier=Decimal("1.00"),
            seasonal_adjustment=Decimal("0"),
            subtotal=Decimal("2000"),
            service_fee=Decimal("240"),
            total=Decimal("2240"),
        ),
        status=status,
        cancellation=cancellation,
        booked_at=NOW,
        updated_at=NOW,
    )


class TransitionBookingTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(os.environ, {"TABLE_NAME": "test-table"}, clear=False)
        cls.env.start()
        cls.resource = patch("handlers.bookings.transition_booking.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.bookings.transition_booking as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop(); cls.env.stop()

    def setUp(self):
        self.p_transition = patch.object(self.mod.booking_service, "transition")
        self.p_refund = patch.object(self.mod.payment_service, "refund_if_due")
        self.mock_transition = self.p_transition.start()
        self.mock_refund = self.p_refund.start()

    def tearDown(self):
        self.p_transition.stop()
        self.p_refund.stop()

    def _event(self, body=None, user_id="host1"):
        return {
            "requestContext": {"authorizer": {"user_id": user_id} if user_id else {}},
            "pathParameters": {"booking_id": "b1"},
            "body": body if body is not None else json.dumps({"event": "accept"}),
        }

    def test_accept(self):
        self.mock_transition.return_value = make_booking(BookingStatus.CONFIRMED)

        resp = self.mod.transition_booking(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_transition.assert_called_once_with("b1", BookingEvent.ACCEPT, "host1", reason=None)
        self.mock_refund.assert_not_called()
        self.assertEqual(json.loads(resp["body"])["data"]["status"], "confirmed")

    def test_cancel_starts_refund(self):
        cancellation = Cancellation(
            cancelled_by=CancelledBy.GUEST,
            cancelled_at=NOW,
            reason="Plans changed",
            refund_status=RefundStatus.PENDING,
            refund_amount=Decimal("2240"),
        )
        cancelled = make_booking(BookingStatus.CANCELLED, cancellation)
        self.mock_transition.return_value = cancelled
        self.mock_refund.return_value = cancelled

        body = json.dumps({"event": "cancel", "reason": "Plans changed"})
        resp = self.mod.transition_booking(self._event(body=body, user_id="guest1"), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_transition.assert_called_once_with(
            "b1", BookingEvent.CANCEL, "guest1", reason="Plans changed"
        )
        self.mock_refund.assert_called_once_with(cancelled)
        data = json.loads(resp["body"])["data"]
        self.assertEqual(data["refund_message"]["title"], "Booking Cancelled")

    def test_system_event_rejected_by_schema(self):
        resp = self.mod.transition_booking(self._event(body=json.dumps({"event": "complete"})), None)
        self.assertEqual(400, resp["statusCode"])
        self.mock_transition.assert_not_called()

    def test_missing_body_returns_400(self):
        resp = self.mod.transition_booking(self._event(body=""), None)
        self.assertEqual(400, resp["statusCode"])

    def test_missing_user_returns_401(self):
        resp = self.mod.transition_booking(self._event(user_id=None), None)
        self.assertEqual(401, resp["statusCode"])

    def test_unauthorized_returns_403(self):
        self.mock_transition.side_effect = Unauthorized("guest may not accept a booking")
        resp = self.mod.transition_booking(self._event(user_id="guest1"), None)
        self.assertEqual(403, resp["statusCode"])

    def test_invalid_transition_returns_409(self):
        self.mock_transition.side_effect = InvalidTransition("cannot accept")
        resp = self.mod.transition_booking(self._event(), None)
        self.assertEqual(409, resp["statusCode"])

    def test_conflict_returns_409(self):
        self.mock_transition.side_effect = BookingConflict("modified concurrently")
        resp = self.mod.transition_booking(self._event(), None)
        self.assertEqual(409, resp["statusCode"])

    def test_not_found_returns_404(self):
        self.mock_transition.side_effect = NotFoundException("booking", "b1", 404)
        resp = self.mod.transition_booking(self._event(), None)
        self.assertEqual(404, resp["statusCode"])


if __name__ == "__main__":
    unittest.main()
