from typing import Optional

from sqlalchemy.orm import Session

from chessfam.core.errors import NotFoundError
from chessfam.models.user import User
from chessfam.schemas.user_schemas import UserProfile

class UserDirectory:
    """Read access to user records for the registration engine."""

    def __init__(self, db: Session):
        self.db = db

    def find_user(self, user_id: int) -> Optional[UserProfile]:
        user = self.db.get(User, user_id)
        if user is None:
            return None
        return UserProfile.model_validate(user)

    def get_user(self, user_id: int) -> UserProfile:
        profile = self.find_user(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        return profile

