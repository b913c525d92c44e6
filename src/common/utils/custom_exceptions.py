from typing import List, Optional


class NotFoundException(Exception):
    def __init__(self, resource: str, identifier: str, status_code: int = 404):
        self.resource = resource
        self.identifier = identifier
        self.status_code = status_code

    def __str__(self):
        return f"{self.resource} '{self.identifier}' not found"


class BookingValidationError(Exception):
    pass


class InvalidRange(BookingValidationError):
    pass


class DatesUnavailable(Exception):
    def __init__(self, message: str, conflicts: Optional[List] = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class Unauthorized(Exception):
    pass


class InvalidTransition(Exception):
    pass


class BookingConflict(Exception):
    pass


class UpstreamPaymentError(Exception):
    pass


class RateLimited(Exception):
    def __init__(self, action: str, retry_after: int):
        super().__init__(f"too many {action} requests, retry in {retry_after}s")
        self.action = action
        self.retry_after = retry_after
