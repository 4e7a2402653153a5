from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text,
)
from sqlalchemy.orm import relationship

from chessfam.core.clock import utcnow
from chessfam.core.database import Base

class Tournament(Base):
    __tablename__ = "tournaments"
    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="ck_tournaments_participants_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    registration_deadline = Column(DateTime, nullable=True)
    status = Column(String, default="upcoming", nullable=False)  # "upcoming", "ongoing", "completed", "cancelled"
    approval_status = Column(String, default="pending", nullable=False)  # "pending", "approved", "rejected"

    max_participants = Column(Integer, nullable=True)
    current_participants = Column(Integer, default=0, nullable=False)
    rating_min = Column(Integer, nullable=True)
    rating_max = Column(Integer, nullable=True)

    entry_fee = Column(Numeric(10, 2), default=0, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    premium_discount_eligible = Column(Boolean, default=False, nullable=False)
    early_bird_pricing = Column(JSON, default=list, nullable=False)
    junior_discount = Column(Numeric(5, 2), nullable=True)
    senior_discount = Column(Numeric(5, 2), nullable=True)
    women_discount = Column(Numeric(5, 2), nullable=True)
    junior_age_max = Column(Integer, default=18, nullable=False)
    senior_age_min = Column(Integer, default=65, nullable=False)
    gm_wgm_discount = Column(Numeric(5, 2), nullable=True)
    im_wim_discount = Column(Numeric(5, 2), nullable=True)
    fm_wfm_discount = Column(Numeric(5, 2), nullable=True)

    # Series parents and festival parents are virtual containers for their editions
    parent_tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=True, index=True)
    is_series_parent = Column(Boolean, default=False, nullable=False)
    is_festival_parent = Column(Boolean, default=False, nullable=False)

    image = Column(String, nullable=True)
    images = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    organizer = relationship("User", back_populates="organized_tournaments")
    registrations = relationship("TournamentRegistration", back_populates="tournament")

    @property
    def is_container(self) -> bool:
        return bool(self.is_series_parent or self.is_festival_parent)
