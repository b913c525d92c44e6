from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ActorRole(str, Enum):
    GUEST = "guest"
    HOST = "host"
    PAYMENT_PROVIDER = "payment_provider"
    SCHEDULER = "scheduler"


@dataclass
class Customer:
    customer_id: str
    name: str = "Guest"
    email: Optional[str] = None
    phone: Optional[str] = None
