from chessfam.core.database import Base

# Import all models here to ensure they are registered with Base
from .user import User
from .tournament import Tournament
from .registration import TournamentRegistration
from .refund import TournamentRefund
from .review import TournamentReview
from .notification import Notification

__all__ = [
    "Base",
    "User",
    "Tournament",
    "TournamentRegistration",
    "TournamentRefund",
    "TournamentReview",
    "Notification",
]
