from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from chessfam.core.clock import utcnow
from chessfam.core.database import Base

class TournamentRegistration(Base):
    __tablename__ = "tournament_registrations"
    __table_args__ = (
        UniqueConstraint("tournament_id", "user_id", name="uq_tournament_registrations_tournament_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Copies of the user's details at registration time, never re-synced
    player_name = Column(String, nullable=False)
    player_email = Column(String, nullable=False)
    player_rating = Column(Integer, nullable=True)

    entry_fee = Column(Numeric(10, 2), nullable=False)
    original_entry_fee = Column(Numeric(10, 2), nullable=False)
    discount_applied = Column(Numeric(10, 2), default=0, nullable=False)
    discount_type = Column(String, nullable=True)  # e.g. "premium_member"
    payment_status = Column(String, default="pending", nullable=False)  # "pending", "paid"

    created_at = Column(DateTime, default=utcnow)

    tournament = relationship("Tournament", back_populates="registrations")
    user = relationship("User")
