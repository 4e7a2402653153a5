from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class NotificationRead(BaseModel):
    id: int
    user_id: int
    tournament_id: Optional[int] = None
    type: str
    message: str
    read_status: bool
    created_at: datetime

    class Config:
        from_attributes = True

class RegistrationNotice(BaseModel):
    """Payload sent to an organizer when a player registers."""
    organizer_id: Optional[int] = None
    organizer_name: str
    tournament_id: int
    tournament_name: str
    player_name: str
    player_email: str
    player_rating: Optional[int] = None
    total_participants: int
    max_participants: Optional[int] = None
    entry_fee_cents: int
    currency: str = "USD"

class WithdrawalNotice(BaseModel):
    """Payload sent to an organizer when a player withdraws."""
    organizer_id: Optional[int] = None
    organizer_name: str
    tournament_id: int
    tournament_name: str
    player_name: str
    player_email: str
    total_participants: int
    max_participants: Optional[int] = None
    refund_processed: bool = False
    refund_amount_cents: Optional[int] = None

class MarkedRead(BaseModel):
    updated: int
