from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from chessfam.core.clock import utcnow
from chessfam.core.errors import NotFoundError
from chessfam.models.user import User
from chessfam.schemas.user_schemas import SubscriptionStatus

class SubscriptionStatusProvider:
    """Reports a user's platform subscription tier and whether they are in a trial."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def get_subscription_status(self, user_id: int) -> SubscriptionStatus:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        trial_ends_at: Optional[datetime] = user.trial_ends_at
        return SubscriptionStatus(
            tier=user.subscription_tier or "free",
            in_trial=trial_ends_at is not None and trial_ends_at > self.clock(),
        )
