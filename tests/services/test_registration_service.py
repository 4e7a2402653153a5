import threading
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from chessfam.core.clock import utcnow
from chessfam.core.database import Base
from chessfam.core.errors import (
    CapacityExceededError, ConflictError, NotFoundError, RejectionReason, ValidationError,
)
from chessfam.models import Tournament, TournamentRegistration, User
from chessfam.schemas.notification_schemas import RegistrationNotice
from chessfam.schemas.user_schemas import UserProfile
from chessfam.services.pricing_service import compute_fee
from chessfam.services.registration_service import RegistrationCoordinator, titles_of, to_cents
from chessfam.services.subscription_service import SubscriptionStatusProvider
from chessfam.services.tournament_store import TournamentStore
from chessfam.services.user_service import UserDirectory
from chessfam.services.withdrawal_service import WithdrawalCoordinator


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def store(db_session):
    return TournamentStore(db_session)


@pytest.fixture
def coordinator(db_session, store, notifier):
    users = UserDirectory(db_session)
    return RegistrationCoordinator(store, users, SubscriptionStatusProvider(db_session), notifier)


@pytest.fixture
def withdrawals(db_session, store, notifier):
    return WithdrawalCoordinator(store, UserDirectory(db_session), notifier)


def live_rows(db_session, tournament_id):
    return db_session.scalar(
        select(func.count(TournamentRegistration.id)).where(TournamentRegistration.tournament_id == tournament_id)
    )


def participant_count(db_session, tournament_id):
    return db_session.scalar(select(Tournament.current_participants).where(Tournament.id == tournament_id))


class TestRegister:

    def test_premium_member_pays_discounted_fee(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(entry_fee=Decimal("50"), premium_discount_eligible=True)
        player = make_user(subscription_tier="premium", rating=1700)

        registration = coordinator.register(tournament.id, player.id)

        assert registration.entry_fee == Decimal("45.00")
        assert registration.original_entry_fee == Decimal("50.00")
        assert registration.discount_applied == Decimal("5.00")
        assert registration.discount_type == "premium_member"
        assert registration.payment_status == "pending"

    def test_trial_user_counts_as_premium(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(entry_fee=Decimal("50"), premium_discount_eligible=True)
        player = make_user(subscription_tier="free", trial_ends_at=utcnow() + timedelta(days=3))

        registration = coordinator.register(tournament.id, player.id)
        assert registration.entry_fee == Decimal("45.00")

    def test_expired_trial_pays_full_fee(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(entry_fee=Decimal("50"), premium_discount_eligible=True)
        player = make_user(subscription_tier="free", trial_ends_at=utcnow() - timedelta(days=3))

        registration = coordinator.register(tournament.id, player.id)
        assert registration.entry_fee == Decimal("50.00")
        assert registration.discount_type is None

    def test_future_birth_date_does_not_block_registration(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(entry_fee=Decimal("30"))
        player = make_user(birth_date=utcnow().date() + timedelta(days=400))

        registration = coordinator.register(tournament.id, player.id)

        assert registration.id is not None
        assert registration.entry_fee == Decimal("30.00")

    def test_free_tournament_marked_paid(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(entry_fee=Decimal("0"))
        registration = coordinator.register(tournament.id, make_user().id)

        assert registration.entry_fee == Decimal("0.00")
        assert registration.payment_status == "paid"

    def test_snapshots_player_details(self, coordinator, db_session, make_user, make_tournament):
        tournament = make_tournament()
        player = make_user(name="Magnus", email="magnus@example.com", rating=2830)

        registration = coordinator.register(tournament.id, player.id)

        player.name = "Renamed"
        db_session.commit()
        db_session.refresh(registration)
        assert registration.player_name == "Magnus"
        assert registration.player_email == "magnus@example.com"
        assert registration.player_rating == 2830

    def test_increments_participant_count(self, coordinator, db_session, make_user, make_tournament):
        tournament = make_tournament(max_participants=10)
        coordinator.register(tournament.id, make_user().id)
        coordinator.register(tournament.id, make_user().id)

        assert participant_count(db_session, tournament.id) == 2
        assert live_rows(db_session, tournament.id) == 2

    def test_full_tournament_rejected(self, coordinator, db_session, make_user, make_tournament):
        tournament = make_tournament(max_participants=1, current_participants=1)

        with pytest.raises(ValidationError) as exc_info:
            coordinator.register(tournament.id, make_user().id)

        assert exc_info.value.reason == RejectionReason.TOURNAMENT_FULL
        assert "tournament is full" in exc_info.value.message.lower()
        assert participant_count(db_session, tournament.id) == 1

    def test_deadline_passed_rejected(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(registration_deadline=utcnow() - timedelta(days=1), max_participants=50)

        with pytest.raises(ValidationError) as exc_info:
            coordinator.register(tournament.id, make_user().id)
        assert exc_info.value.reason == RejectionReason.DEADLINE_PASSED

    def test_duplicate_registration_conflicts(self, coordinator, db_session, make_user, make_tournament):
        tournament = make_tournament()
        player = make_user()

        coordinator.register(tournament.id, player.id)
        with pytest.raises(ConflictError):
            coordinator.register(tournament.id, player.id)

        assert participant_count(db_session, tournament.id) == 1
        assert live_rows(db_session, tournament.id) == 1

    def test_unknown_tournament(self, coordinator, make_user):
        with pytest.raises(NotFoundError):
            coordinator.register(9999, make_user().id)

    def test_unknown_user(self, coordinator, db_session, make_tournament):
        tournament = make_tournament()
        with pytest.raises(NotFoundError):
            coordinator.register(tournament.id, 9999)
        assert participant_count(db_session, tournament.id) == 0

    def test_notifies_organizer(self, coordinator, notifier, organizer, make_user, make_tournament):
        tournament = make_tournament(name="City Rapid", entry_fee=Decimal("12.50"), max_participants=20)
        player = make_user(name="Judit", rating=2600)

        coordinator.register(tournament.id, player.id)

        notifier.notify_new_registration.assert_called_once()
        email, notice = notifier.notify_new_registration.call_args.args
        assert email == organizer.email
        assert isinstance(notice, RegistrationNotice)
        assert notice.organizer_id == organizer.id
        assert notice.tournament_name == "City Rapid"
        assert notice.player_name == "Judit"
        assert notice.player_rating == 2600
        assert notice.total_participants == 1
        assert notice.max_participants == 20
        assert notice.entry_fee_cents == 1250

    def test_notifier_failure_keeps_registration(self, coordinator, notifier, db_session, make_user, make_tournament):
        notifier.notify_new_registration.side_effect = RuntimeError("smtp down")
        tournament = make_tournament()

        registration = coordinator.register(tournament.id, make_user().id)

        assert registration.id is not None
        assert live_rows(db_session, tournament.id) == 1
        assert participant_count(db_session, tournament.id) == 1

    def test_subscription_lookup_failure_prices_without_discount(self, db_session, store, notifier, make_user, make_tournament):
        subscriptions = MagicMock()
        subscriptions.get_subscription_status.side_effect = RuntimeError("billing unavailable")
        coordinator = RegistrationCoordinator(store, UserDirectory(db_session), subscriptions, notifier)
        tournament = make_tournament(entry_fee=Decimal("50"), premium_discount_eligible=True)

        registration = coordinator.register(tournament.id, make_user(subscription_tier="premium").id)

        assert registration.entry_fee == Decimal("50.00")
        assert registration.discount_applied == Decimal("0.00")

    def test_subscription_not_queried_when_no_discount_possible(self, db_session, store, notifier, make_user, make_tournament):
        subscriptions = MagicMock()
        coordinator = RegistrationCoordinator(store, UserDirectory(db_session), subscriptions, notifier)

        coordinator.register(make_tournament(entry_fee=Decimal("50")).id, make_user().id)
        coordinator.register(make_tournament(entry_fee=Decimal("0"), premium_discount_eligible=True).id, make_user().id)

        subscriptions.get_subscription_status.assert_not_called()

    def test_custom_fee_calculator(self, db_session, store, notifier, make_user, make_tournament):
        calculator = MagicMock(wraps=compute_fee)
        coordinator = RegistrationCoordinator(
            store, UserDirectory(db_session), SubscriptionStatusProvider(db_session), notifier,
            fee_calculator=calculator,
        )
        player = make_user(birth_date=date(2012, 5, 1), gender="female", chess_title="WFM")

        coordinator.register(make_tournament(entry_fee=Decimal("10")).id, player.id)

        config, registrant = calculator.call_args.args
        assert config.entry_fee == Decimal("10.00")
        assert registrant.gender == "female"
        assert registrant.age is not None and registrant.age < 18
        assert {title.value for title in registrant.titles} == {"WFM"}


class TestPreviewFee:

    def test_shows_active_early_bird_tier(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(
            entry_fee=Decimal("100"),
            early_bird_pricing=[
                {"deadline": "2099-06-01", "discount": 10, "discount_type": "percentage", "label": "Late Bird"},
                {"deadline": "2099-01-01", "discount": 20, "discount_type": "percentage"},
            ],
        )
        preview = coordinator.preview_fee(tournament.id, make_user().id)

        assert preview.final_fee == Decimal("100.00")
        assert preview.active_early_bird_tier.deadline == date(2099, 1, 1)
        assert preview.early_bird_price == Decimal("80.00")

    def test_no_tier_when_all_expired(self, coordinator, make_user, make_tournament):
        tournament = make_tournament(
            entry_fee=Decimal("100"),
            early_bird_pricing=[{"deadline": "2000-01-01", "discount": 20, "discount_type": "fixed"}],
        )
        preview = coordinator.preview_fee(tournament.id, make_user().id)

        assert preview.active_early_bird_tier is None
        assert preview.early_bird_price is None

    def test_unknown_user(self, coordinator, make_tournament):
        with pytest.raises(NotFoundError):
            coordinator.preview_fee(make_tournament().id, 9999)


class TestAtomicSeatCounter:

    def test_stale_snapshot_cannot_overfill(self, store, db_session, make_user, make_tournament):
        tournament = make_tournament(max_participants=1)
        first, second = make_user(), make_user()
        store.add_registration(_registration(tournament.id, first))

        # A registration built from a snapshot taken before the last seat went
        with pytest.raises(CapacityExceededError) as exc_info:
            store.add_registration(_registration(tournament.id, second))

        assert exc_info.value.reason == RejectionReason.TOURNAMENT_FULL
        assert participant_count(db_session, tournament.id) == 1
        assert live_rows(db_session, tournament.id) == 1

    def test_duplicate_insert_rolls_back_counter(self, store, db_session, make_user, make_tournament):
        tournament = make_tournament()
        player = make_user()
        store.add_registration(_registration(tournament.id, player))

        with pytest.raises(ConflictError):
            store.add_registration(_registration(tournament.id, player))

        assert participant_count(db_session, tournament.id) == 1
        assert live_rows(db_session, tournament.id) == 1

    def test_unknown_tournament(self, store, make_user):
        with pytest.raises(NotFoundError):
            store.add_registration(_registration(9999, make_user()))

    def test_counter_matches_rows_after_mixed_operations(
        self, coordinator, withdrawals, db_session, make_user, make_tournament
    ):
        tournament = make_tournament(max_participants=3)
        players = [make_user() for _ in range(5)]

        coordinator.register(tournament.id, players[0].id)
        coordinator.register(tournament.id, players[1].id)
        withdrawals.withdraw(tournament.id, players[0].id)
        coordinator.register(tournament.id, players[2].id)
        coordinator.register(tournament.id, players[3].id)
        with pytest.raises(ValidationError):
            coordinator.register(tournament.id, players[4].id)
        withdrawals.withdraw(tournament.id, players[2].id)
        coordinator.register(tournament.id, players[0].id)

        assert participant_count(db_session, tournament.id) == live_rows(db_session, tournament.id) == 3

    def test_concurrent_registrations_respect_capacity(self, tmp_path):
        seats, attempts = 3, 8
        engine = create_engine(
            f"sqlite:///{tmp_path / 'race.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        with Session() as setup:
            tournament = Tournament(
                name="Blitz Arena", start_date=utcnow() + timedelta(days=7), status="upcoming",
                approval_status="approved", max_participants=seats, current_participants=0, entry_fee=0,
            )
            users = [User(name=f"Racer {i}", email=f"racer{i}@example.com") for i in range(attempts)]
            setup.add_all([tournament, *users])
            setup.commit()
            tournament_id = tournament.id
            user_ids = [user.id for user in users]

        barrier = threading.Barrier(attempts)
        successes, rejections, unexpected = [], [], []
        lock = threading.Lock()

        def attempt(user_id):
            with Session() as session:
                store = TournamentStore(session)
                coordinator = RegistrationCoordinator(
                    store, UserDirectory(session), SubscriptionStatusProvider(session), MagicMock()
                )
                barrier.wait()
                try:
                    coordinator.register(tournament_id, user_id)
                    outcome = successes
                except ValidationError as exc:
                    outcome = rejections if exc.reason == RejectionReason.TOURNAMENT_FULL else unexpected
                except Exception:
                    outcome = unexpected
                with lock:
                    outcome.append(user_id)

        threads = [threading.Thread(target=attempt, args=(user_id,)) for user_id in user_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert unexpected == []
        assert len(successes) == seats
        assert len(rejections) == attempts - seats
        with Session() as check:
            assert participant_count(check, tournament_id) == seats
            assert live_rows(check, tournament_id) == seats
        engine.dispose()


class TestHelpers:

    def test_to_cents(self):
        assert to_cents(Decimal("12.50")) == 1250
        assert to_cents(Decimal("0.005")) == 1
        assert to_cents(Decimal("0")) == 0

    def test_titles_of(self, make_user):
        assert {t.value for t in titles_of(UserProfile.model_validate(make_user(chess_title="gm")))} == {"GM"}
        assert titles_of(UserProfile.model_validate(make_user(chess_title="CM"))) == frozenset()
        assert titles_of(UserProfile.model_validate(make_user())) == frozenset()


def _registration(tournament_id, user):
    return TournamentRegistration(
        tournament_id=tournament_id,
        user_id=user.id,
        player_name=user.name,
        player_email=user.email,
        entry_fee=Decimal("0"),
        original_entry_fee=Decimal("0"),
        discount_applied=Decimal("0"),
        payment_status="paid",
    )
