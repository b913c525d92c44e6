import os
from decimal import Decimal
from typing import Optional

from common.services.payment_provider import PaymentProvider, load_payment_provider
from common.services.pricing_service import FeePolicy
from common.services.schedule_service import SchedulerService
from common.utils.constants import (
    DEFAULT_CLEANING_FEE,
    DEFAULT_CURRENCY,
    DEFAULT_SERVICE_FEE_RATE,
)


def env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def fee_policy_from_env() -> FeePolicy:
    return FeePolicy(
        service_fee_rate=Decimal(
            os.environ.get("SERVICE_FEE_RATE", str(DEFAULT_SERVICE_FEE_RATE))
        ),
        cleaning_fee=Decimal(os.environ.get("CLEANING_FEE", str(DEFAULT_CLEANING_FEE))),
        currency=os.environ.get("CURRENCY", DEFAULT_CURRENCY),
    )


def scheduler_from_env() -> Optional[SchedulerService]:
    completion_arn = os.environ.get("AUTO_COMPLETE_LAMBDA_ARN")
    expiry_arn = os.environ.get("PAYMENT_EXPIRY_LAMBDA_ARN")
    role_arn = os.environ.get("SCHEDULER_ROLE_ARN")
    if not (completion_arn and expiry_arn and role_arn):
        return None
    return SchedulerService(
        completion_arn,
        expiry_arn,
        role_arn,
        region=os.environ.get("AWS_REGION", "ap-south-1"),
    )


def payment_provider_from_env() -> Optional[PaymentProvider]:
    return load_payment_provider(os.environ.get("PAYMENT_PROVIDER_CLASS"))
