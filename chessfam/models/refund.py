from sqlalchemy import Column, DateTime, Integer, Numeric, String

from chessfam.core.clock import utcnow
from chessfam.core.database import Base

class TournamentRefund(Base):
    __tablename__ = "tournament_refunds"

    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: refund records outlive the registration they were issued for
    tournament_registration_id = Column(Integer, nullable=False, index=True)
    tournament_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    refund_amount = Column(Numeric(10, 2), nullable=False)
    refund_percentage = Column(Numeric(5, 2), nullable=True)
    status = Column(String, default="pending", nullable=False)  # "pending", "completed", "failed"
    created_at = Column(DateTime, default=utcnow)
