from datetime import date
from typing import Optional

from pydantic import BaseModel

class UserProfile(BaseModel):
    """What the registration engine needs to know about a user."""
    id: int
    name: str
    email: str
    rating: Optional[int] = None
    is_admin: bool = False
    subscription_tier: str = "free"
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    chess_title: Optional[str] = None

    class Config:
        from_attributes = True

class SubscriptionStatus(BaseModel):
    tier: str
    in_trial: bool = False

    @property
    def is_premium(self) -> bool:
        return self.tier == "premium" or self.in_trial
