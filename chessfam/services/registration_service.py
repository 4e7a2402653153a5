import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, FrozenSet

from chessfam.core.clock import utcnow
from chessfam.core.errors import NotFoundError
from chessfam.models.registration import TournamentRegistration
from chessfam.models.tournament import Tournament
from chessfam.schemas.notification_schemas import RegistrationNotice
from chessfam.schemas.registration_schemas import ChessTitle, FeePreview, FeeQuote, Registrant
from chessfam.schemas.tournament_schemas import PricingConfig
from chessfam.schemas.user_schemas import UserProfile
from chessfam.services.eligibility_service import check_eligibility
from chessfam.services.pricing_service import (
    apply_tier, compute_fee, registrant_age, round_money, select_active_tier,
)
from chessfam.services.subscription_service import SubscriptionStatusProvider
from chessfam.services.tournament_store import TournamentStore
from chessfam.services.user_service import UserDirectory

logger = logging.getLogger(__name__)

FeeCalculator = Callable[[PricingConfig, Registrant], FeeQuote]


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def titles_of(user: UserProfile) -> FrozenSet[ChessTitle]:
    title = (user.chess_title or "").upper()
    if title in ChessTitle.__members__:
        return frozenset({ChessTitle(title)})
    return frozenset()


class RegistrationCoordinator:
    """
    Registers a user for a tournament.

    Order of work: load the tournament, check eligibility, load the user,
    price the entry, then persist the registration and take a seat in one
    store transaction. The organizer notification comes last and can never
    undo or fail a registration that was stored.

    ``fee_calculator`` defaults to the premium-member pricing in
    ``pricing_service.compute_fee``; pass another callable to compose the
    early-bird, demographic or title discounts into the live flow.
    """

    def __init__(
        self,
        store: TournamentStore,
        users: UserDirectory,
        subscriptions: SubscriptionStatusProvider,
        notifier,
        fee_calculator: FeeCalculator = compute_fee,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.users = users
        self.subscriptions = subscriptions
        self.notifier = notifier
        self.fee_calculator = fee_calculator
        self.clock = clock

    def register(self, tournament_id: int, user_id: int) -> TournamentRegistration:
        now = self.clock()
        tournament = self.store.require_tournament(tournament_id)

        user = self.users.find_user(user_id)
        check_eligibility(tournament, user_id, user.rating if user else None, self.store, now)
        if user is None:
            raise NotFoundError("User not found")

        quote = self.quote(tournament, user, now)
        registration = TournamentRegistration(
            tournament_id=tournament_id,
            user_id=user_id,
            player_name=user.name,
            player_email=user.email,
            player_rating=user.rating,
            entry_fee=quote.final_fee,
            original_entry_fee=quote.base_fee,
            discount_applied=quote.discount_amount,
            discount_type=quote.discount_label,
            payment_status=quote.payment_status.value,
        )
        participants = self.store.add_registration(registration)
        logger.info(
            "User %s registered for tournament %s (fee %s %s, %s participants)",
            user_id, tournament_id, quote.final_fee, quote.currency, participants,
        )

        self._notify_organizer(tournament, user, quote, participants)
        return registration

    def quote(self, tournament: Tournament, user: UserProfile, now: datetime) -> FeeQuote:
        config = PricingConfig.model_validate(tournament)
        registrant = Registrant(
            age=registrant_age(user.birth_date, now),
            gender=user.gender,
            titles=titles_of(user),
            is_premium_member=self._is_premium_member(user.id, config),
            registered_at=now,
        )
        return self.fee_calculator(config, registrant)

    def preview_fee(self, tournament_id: int, user_id: int) -> FeePreview:
        """What ``user_id`` would pay right now, alongside the early-bird tier on offer."""
        now = self.clock()
        tournament = self.store.require_tournament(tournament_id)
        user = self.users.get_user(user_id)
        quote = self.quote(tournament, user, now)

        config = PricingConfig.model_validate(tournament)
        tier = select_active_tier(config.early_bird_pricing, now)
        return FeePreview(
            **quote.model_dump(),
            active_early_bird_tier=tier,
            early_bird_price=round_money(apply_tier(config.entry_fee, tier)) if tier else None,
        )

    def _is_premium_member(self, user_id: int, config: PricingConfig) -> bool:
        # Only worth asking when a premium discount could actually apply
        if not (config.premium_discount_eligible and config.entry_fee > 0):
            return False
        try:
            return self.subscriptions.get_subscription_status(user_id).is_premium
        except Exception:
            logger.warning(
                "Subscription lookup failed for user %s, pricing without premium discount",
                user_id, exc_info=True,
            )
            return False

    def _notify_organizer(
        self, tournament: Tournament, player: UserProfile, quote: FeeQuote, participants: int
    ) -> None:
        try:
            if tournament.organizer_id is None:
                return
            organizer = self.users.find_user(tournament.organizer_id)
            if organizer is None:
                logger.warning("Organizer %s of tournament %s not found", tournament.organizer_id, tournament.id)
                return
            notice = RegistrationNotice(
                organizer_id=organizer.id,
                organizer_name=organizer.name,
                tournament_id=tournament.id,
                tournament_name=tournament.name,
                player_name=player.name,
                player_email=player.email,
                player_rating=player.rating,
                total_participants=participants,
                max_participants=tournament.max_participants,
                entry_fee_cents=to_cents(quote.final_fee),
                currency=quote.currency,
            )
            self.notifier.notify_new_registration(organizer.email, notice)
        except Exception:
            logger.exception("Failed to notify organizer of registration to tournament %s", tournament.id)
