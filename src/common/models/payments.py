from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ChargeSession:
    provider_order_id: str
    client_session_token: str


@dataclass(frozen=True)
class ChargeStatus:
    settled: bool
    transaction_ref: Optional[str] = None
    provider_status: Optional[str] = None
