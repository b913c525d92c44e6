"""Boundary to the payment gateway.

Concrete providers live outside this package and are selected by dotted path
(``PAYMENT_PROVIDER_CLASS``). Implementations raise ``UpstreamPaymentError``
for any provider-side failure.
"""
import importlib
from decimal import Decimal
from typing import Optional

from common.models.payments import ChargeSession, ChargeStatus
from common.models.users import Customer


class PaymentProvider:
    name = "abstract"

    def create_charge(
        self, booking_id: str, amount: Decimal, currency: str, customer: Customer
    ) -> ChargeSession:
        raise NotImplementedError

    def query_charge_status(self, provider_order_id: str) -> ChargeStatus:
        raise NotImplementedError

    def refund(self, booking_id: str, amount: Decimal) -> str:
        """Start a refund and return the provider's reference for it."""
        raise NotImplementedError


def load_payment_provider(path: Optional[str]) -> Optional[PaymentProvider]:
    if not path:
        return None
    module_name, _, class_name = path.rpartition(".")
    if not module_name:
        raise ValueError(f"PAYMENT_PROVIDER_CLASS must be a dotted path, got {path!r}")
    provider_cls = getattr(importlib.import_module(module_name), class_name)
    if not issubclass(provider_cls, PaymentProvider):
        raise TypeError(f"{path} is not a PaymentProvider")
    return provider_cls()
