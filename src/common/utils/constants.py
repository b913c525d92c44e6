from decimal import Decimal

# longest bookable stay in nights; keeps a booking's night locks inside one
# DynamoDB transaction
MAX_STAY = 30

MAX_CALENDAR_MONTHS = 12
DEFAULT_CALENDAR_MONTHS = 3
DEFAULT_RANGE_DAYS = 90

DEFAULT_CURRENCY = "INR"
DEFAULT_SERVICE_FEE_RATE = Decimal("0.12")
DEFAULT_CLEANING_FEE = Decimal("0")

DEFAULT_PAYMENT_WINDOW_MINUTES = 30
DEFAULT_CHECKOUT_HOUR_UTC = 12
DEFAULT_RESERVE_COOLDOWN_SECONDS = 5
