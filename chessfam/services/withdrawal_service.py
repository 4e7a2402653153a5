import logging

from chessfam.core.errors import RejectionReason, ValidationError
from chessfam.models.tournament import Tournament
from chessfam.schemas.notification_schemas import WithdrawalNotice
from chessfam.services.registration_service import to_cents
from chessfam.services.tournament_store import TournamentStore
from chessfam.services.user_service import UserDirectory

logger = logging.getLogger(__name__)


class WithdrawalCoordinator:
    """Removes a registration, frees its seat and tells the organizer."""

    def __init__(self, store: TournamentStore, users: UserDirectory, notifier):
        self.store = store
        self.users = users
        self.notifier = notifier

    def withdraw(self, tournament_id: int, user_id: int) -> None:
        tournament = self.store.require_tournament(tournament_id)
        if tournament.status != "upcoming":
            raise ValidationError(
                "Cannot withdraw from a tournament that has already started",
                reason=RejectionReason.WITHDRAWAL_CLOSED,
            )

        registration_id, participants = self.store.remove_registration(tournament_id, user_id)
        logger.info(
            "User %s withdrew from tournament %s (%s participants)", user_id, tournament_id, participants
        )

        self._notify_organizer(tournament, user_id, registration_id, participants)

    def _notify_organizer(self, tournament: Tournament, user_id: int, registration_id: int, participants: int) -> None:
        try:
            if tournament.organizer_id is None:
                return
            organizer = self.users.find_user(tournament.organizer_id)
            player = self.users.find_user(user_id)
            if organizer is None or player is None:
                return

            refund = self.store.find_completed_refund(registration_id)
            notice = WithdrawalNotice(
                organizer_id=organizer.id,
                organizer_name=organizer.name,
                tournament_id=tournament.id,
                tournament_name=tournament.name,
                player_name=player.name,
                player_email=player.email,
                total_participants=participants,
                max_participants=tournament.max_participants,
                refund_processed=refund is not None,
                refund_amount_cents=to_cents(refund.refund_amount) if refund is not None else None,
            )
            self.notifier.notify_withdrawal(organizer.email, notice)
        except Exception:
            logger.exception("Failed to notify organizer of withdrawal from tournament %s", tournament.id)
