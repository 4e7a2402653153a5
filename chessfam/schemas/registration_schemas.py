from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, Field

from .tournament_schemas import EarlyBirdTier

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"

class ChessTitle(str, Enum):
    GM = "GM"
    WGM = "WGM"
    IM = "IM"
    WIM = "WIM"
    FM = "FM"
    WFM = "WFM"

class Registrant(BaseModel):
    """The attributes of a player that discounts can depend on."""
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = None
    titles: FrozenSet[ChessTitle] = frozenset()
    is_premium_member: bool = False  # Includes users in a trial
    registered_at: datetime

class FeeQuote(BaseModel):
    final_fee: Decimal
    base_fee: Decimal
    discount_amount: Decimal = Decimal("0.00")
    discount_label: Optional[str] = None
    currency: str = "USD"

    @property
    def payment_status(self) -> PaymentStatus:
        return PaymentStatus.PENDING if self.final_fee > 0 else PaymentStatus.PAID

class FeePreview(FeeQuote):
    """A quote plus the early-bird tier that would be active right now, for display."""
    active_early_bird_tier: Optional[EarlyBirdTier] = None
    early_bird_price: Optional[Decimal] = None

class RegistrationRead(BaseModel):
    id: int
    tournament_id: int
    user_id: int
    player_name: str
    player_email: str
    player_rating: Optional[int] = None
    entry_fee: Decimal
    original_entry_fee: Decimal
    discount_applied: Decimal
    discount_type: Optional[str] = None
    payment_status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ParticipantPage(BaseModel):
    participants: List[RegistrationRead]
    total: int

class RegistrationCheck(BaseModel):
    registered: bool
    registration: Optional[RegistrationRead] = None
