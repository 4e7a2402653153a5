from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String
from sqlalchemy.orm import relationship

from chessfam.core.clock import utcnow
from chessfam.core.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    rating = Column(Integer, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    subscription_tier = Column(String, default="free", nullable=False)  # "free", "basic", "premium"
    trial_ends_at = Column(DateTime, nullable=True)
    birth_date = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    chess_title = Column(String, nullable=True)  # e.g. "GM", "WIM"
    created_at = Column(DateTime, default=utcnow)

    organized_tournaments = relationship("Tournament", back_populates="organizer")
    notifications = relationship("Notification", back_populates="user")
