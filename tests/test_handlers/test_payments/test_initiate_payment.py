import importlib
import json
import os
import unittest
from unittest.mock import MagicMock, patch

from common.models.payments import ChargeSession
from common.models.users import Customer
from common.utils.custom_exceptions import (
    InvalidTransition,
    NotFoundException,
    Unauthorized,
    UpstreamPaymentError,
)


class InitiatePaymentTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.env = patch.dict(os.environ, {"TABLE_NAME": "test-table"}, clear=False)
        cls.env.start()
        cls.resource = patch("handlers.payments.initiate_payment.resource")
        mock_res = cls.resource.start()
        mock_res.return_value.Table.return_value = MagicMock()
        import handlers.payments.initiate_payment as mod
        cls.mod = importlib.reload(mod)

    @classmethod
    def tearDownClass(cls):
        cls.resource.stop(); cls.env.stop()

    def setUp(self):
        self.p_initiate = patch.object(self.mod.payment_service, "initiate_payment")
        self.mock_initiate = self.p_initiate.start()

    def tearDown(self):
        self.p_initiate.stop()

    def _event(self, body=None, user_id="guest1"):
        authorizer = {"user_id": user_id, "email": "guest@example.com"} if user_id else {}
        return {
            "requestContext": {"authorizer": authorizer},
            "pathParameters": {"booking_id": "b1"},
            "body": body,
        }

    def test_success(self):
        self.mock_initiate.return_value = ChargeSession("order1", "token1")

        resp = self.mod.initiate_payment(self._event(json.dumps({"customer_name": "Asha"})), None)

        self.assertEqual(200, resp["statusCode"])
        self.mock_initiate.assert_called_once_with(
            "b1",
            "guest1",
            Customer(customer_id="guest1", name="Asha", email="guest@example.com"),
        )
        data = json.loads(resp["body"])["data"]
        self.assertEqual(data["provider_order_id"], "order1")
        self.assertEqual(data["client_session_token"], "token1")

    def test_empty_body_uses_defaults(self):
        self.mock_initiate.return_value = ChargeSession("order1", "token1")

        resp = self.mod.initiate_payment(self._event(), None)

        self.assertEqual(200, resp["statusCode"])
        customer = self.mock_initiate.call_args[0][2]
        self.assertEqual(customer.name, "Guest")

    def test_missing_user_returns_401(self):
        resp = self.mod.initiate_payment(self._event(user_id=None), None)
        self.assertEqual(401, resp["statusCode"])

    def test_not_guest_returns_403(self):
        self.mock_initiate.side_effect = Unauthorized("only the guest can pay for a booking")
        resp = self.mod.initiate_payment(self._event(user_id="host1"), None)
        self.assertEqual(403, resp["statusCode"])

    def test_wrong_status_returns_409(self):
        self.mock_initiate.side_effect = InvalidTransition("cannot pay")
        resp = self.mod.initiate_payment(self._event(), None)
        self.assertEqual(409, resp["statusCode"])

    def test_provider_failure_returns_502(self):
        self.mock_initiate.side_effect = UpstreamPaymentError("gateway down")
        resp = self.mod.initiate_payment(self._event(), None)
        self.assertEqual(502, resp["statusCode"])

    def test_not_found_returns_404(self):
        self.mock_initiate.side_effect = NotFoundException("booking", "b1", 404)
        resp = self.mod.initiate_payment(self._event(), None)
        self.assertEqual(404, resp["statusCode"])


if __name__ == "__main__":
    unittest.main()
