from enum import Enum
from typing import Optional


class RejectionReason(str, Enum):
    NOT_REGISTRABLE = "not_registrable"
    REGISTRATION_CLOSED = "registration_closed"
    DEADLINE_PASSED = "deadline_passed"
    TOURNAMENT_FULL = "tournament_full"
    ALREADY_REGISTERED = "already_registered"
    BELOW_MINIMUM_RATING = "below_minimum_rating"
    ABOVE_MAXIMUM_RATING = "above_maximum_rating"
    WITHDRAWAL_CLOSED = "withdrawal_closed"


class ChessFamError(Exception):
    """Base class for errors the HTTP layer turns into a status code."""

    status_code = 500

    def __init__(self, message: str, reason: Optional[RejectionReason] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class NotFoundError(ChessFamError):
    status_code = 404


class ValidationError(ChessFamError):
    status_code = 400


class CapacityExceededError(ValidationError):
    """The conditional counter update matched no row: the tournament filled up concurrently."""

    def __init__(self, message: str = "Tournament is full"):
        super().__init__(message, reason=RejectionReason.TOURNAMENT_FULL)


class ConflictError(ChessFamError):
    status_code = 409


class ForbiddenError(ChessFamError):
    status_code = 403
