import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from chessfam.core.errors import ForbiddenError, ValidationError
from chessfam.models.registration import TournamentRegistration
from chessfam.models.tournament import Tournament
from chessfam.schemas import registration_schemas, tournament_schemas
from chessfam.services.tournament_store import TournamentStore
from chessfam.services.user_service import UserDirectory

logger = logging.getLogger(__name__)


class TournamentService:
    """Organizer-facing tournament management."""

    def __init__(self, store: TournamentStore, users: UserDirectory):
        self.store = store
        self.users = users

    def create_tournament(self, tournament_in: tournament_schemas.TournamentCreate, organizer_id: int) -> Tournament:
        if tournament_in.parent_tournament_id is not None:
            parent = self.store.require_tournament(tournament_in.parent_tournament_id)
            if not parent.is_container:
                raise ValidationError("Parent tournament must be a series or festival")
            self._require_manager(parent, organizer_id)

        data = tournament_in.model_dump(mode="json", include={"early_bird_pricing"})
        db_tournament = Tournament(
            **tournament_in.model_dump(exclude={"early_bird_pricing"}),
            early_bird_pricing=data["early_bird_pricing"],
            organizer_id=organizer_id,
            status="upcoming",
            approval_status="pending",
            current_participants=0,
        )
        tournament = self.store.add_tournament(db_tournament)
        logger.info("Tournament %s created by user %s, awaiting approval", tournament.id, organizer_id)
        return tournament

    def get_tournament(self, tournament_id: int) -> Tournament:
        return self.store.require_tournament(tournament_id)

    def list_tournaments(self, status: Optional[str] = None) -> List[Tournament]:
        return self.store.list_public_tournaments(status=status)

    def update_tournament(
        self, tournament_id: int, tournament_update: tournament_schemas.TournamentUpdate, current_user_id: int
    ) -> Tournament:
        db_tournament = self.store.require_tournament(tournament_id)
        self._require_manager(db_tournament, current_user_id)
        if db_tournament.status != "upcoming":
            raise ValidationError("Cannot edit a tournament that has already started")

        update_data = tournament_update.model_dump(exclude_unset=True)
        if "early_bird_pricing" in update_data:
            update_data["early_bird_pricing"] = tournament_update.model_dump(
                mode="json", include={"early_bird_pricing"}
            )["early_bird_pricing"] or []
        if "status" in update_data and update_data["status"] is not None:
            update_data["status"] = tournament_schemas.TournamentStatus(update_data["status"]).value

        # Validate the merged result the same way a new tournament is validated
        merged = tournament_schemas.TournamentRead.model_validate(db_tournament).model_dump()
        merged.update({k: v for k, v in update_data.items() if v is not None or k in _NULLABLE_FIELDS})
        try:
            tournament_schemas.TournamentBase.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        if merged.get("max_participants") is not None and merged["max_participants"] < db_tournament.current_participants:
            raise ValidationError("Maximum participants cannot be lower than the number already registered")

        for key, value in update_data.items():
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            setattr(db_tournament, key, value)
        return self.store.save_tournament(db_tournament)

    def delete_tournament(self, tournament_id: int, current_user_id: int) -> None:
        db_tournament = self.store.require_tournament(tournament_id)
        if db_tournament.organizer_id != current_user_id:
            raise ForbiddenError("Only the organizer can delete this tournament")
        if db_tournament.status != "upcoming":
            raise ValidationError("Cannot delete a tournament that has already started")
        if self.store.count_registrations(tournament_id) > 0:
            raise ValidationError(
                "Cannot delete tournament with existing registrations. Please contact participants first."
            )
        self.store.delete_tournament(db_tournament)
        logger.info("Tournament %s deleted by user %s", tournament_id, current_user_id)

    def set_approval_status(
        self, tournament_id: int, approval_status: tournament_schemas.ApprovalStatus, current_user_id: int
    ) -> Tournament:
        if not self.users.get_user(current_user_id).is_admin:
            raise ForbiddenError("Only administrators can review tournaments")
        db_tournament = self.store.require_tournament(tournament_id)
        db_tournament.approval_status = tournament_schemas.ApprovalStatus(approval_status).value
        return self.store.save_tournament(db_tournament)

    def list_participants(
        self, tournament_id: int, page: int = 1, limit: int = 50
    ) -> Tuple[List[TournamentRegistration], int]:
        self.store.require_tournament(tournament_id)
        return self.store.list_participants(tournament_id, page=page, limit=limit)

    def get_registration_status(self, tournament_id: int, user_id: int) -> registration_schemas.RegistrationCheck:
        self.store.require_tournament(tournament_id)
        registration = self.store.get_registration(tournament_id, user_id)
        return registration_schemas.RegistrationCheck(
            registered=registration is not None,
            registration=registration_schemas.RegistrationRead.model_validate(registration) if registration else None,
        )

    def get_user_tournaments(self, user_id: int) -> List[Tournament]:
        return self.store.list_user_tournaments(user_id)

    def _require_manager(self, tournament: Tournament, user_id: int) -> None:
        if tournament.organizer_id == user_id:
            return
        user = self.users.find_user(user_id)
        if user is None or not user.is_admin:
            raise ForbiddenError("Not authorized to manage this tournament")


# Fields an organizer may clear explicitly by sending null
_NULLABLE_FIELDS = {
    "description", "end_date", "registration_deadline", "max_participants", "rating_min", "rating_max",
    "junior_discount", "senior_discount", "women_discount",
    "gm_wgm_discount", "im_wim_discount", "fm_wfm_discount", "image",
}
