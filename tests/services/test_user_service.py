from datetime import datetime, timedelta

import pytest

from chessfam.core.errors import NotFoundError
from chessfam.services.subscription_service import SubscriptionStatusProvider
from chessfam.services.user_service import UserDirectory

NOW = datetime(2026, 6, 1, 9, 0, 0)


@pytest.fixture
def users(db_session):
    return UserDirectory(db_session)


class TestUserDirectory:

    def test_profile_fields(self, users, make_user):
        user = make_user(name="Test User", rating=1900, chess_title="FM")
        profile = users.get_user(user.id)
        assert profile.rating == 1900
        assert profile.chess_title == "FM"
        assert profile.subscription_tier == "free"
        assert profile.is_admin is False

    def test_find_user(self, users, make_user):
        user = make_user(name="Found")
        assert users.find_user(user.id).name == "Found"
        assert users.find_user(9999) is None

    def test_get_user_not_found(self, users):
        with pytest.raises(NotFoundError):
            users.get_user(9999)


class TestSubscriptionStatusProvider:

    @pytest.mark.parametrize(
        "tier, trial_offset, premium",
        [
            ("premium", None, True),
            ("basic", None, False),
            ("free", timedelta(days=2), True),
            ("free", timedelta(days=-2), False),
        ],
    )
    def test_is_premium(self, db_session, make_user, tier, trial_offset, premium):
        user = make_user(subscription_tier=tier, trial_ends_at=NOW + trial_offset if trial_offset else None)
        status = SubscriptionStatusProvider(db_session, clock=lambda: NOW).get_subscription_status(user.id)
        assert status.tier == tier
        assert status.is_premium is premium

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            SubscriptionStatusProvider(db_session).get_subscription_status(9999)
