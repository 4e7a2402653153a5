"""
SQL persistence for tournaments and registrations.

The coordinators never touch the session directly; they go through this store
so the two counter-changing operations stay single transactions:

* ``add_registration`` bumps ``current_participants`` with a conditional
  ``UPDATE ... WHERE current_participants < max_participants`` and inserts the
  registration row in the same transaction.
* ``remove_registration`` deletes the row and decrements the counter together.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from chessfam.core.clock import utcnow
from chessfam.core.errors import (
    CapacityExceededError, ConflictError, NotFoundError, RejectionReason,
)
from chessfam.models.refund import TournamentRefund
from chessfam.models.registration import TournamentRegistration
from chessfam.models.review import TournamentReview
from chessfam.models.tournament import Tournament
from chessfam.models.user import User

logger = logging.getLogger(__name__)


class TournamentStore:
    def __init__(self, db: Session):
        self.db = db

    # --- tournaments ---

    def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        return self.db.get(Tournament, tournament_id)

    def require_tournament(self, tournament_id: int) -> Tournament:
        tournament = self.get_tournament(tournament_id)
        if tournament is None:
            raise NotFoundError("Tournament not found")
        return tournament

    def list_public_tournaments(self, status: Optional[str] = None) -> List[Tournament]:
        query = select(Tournament).where(
            Tournament.approval_status == "approved",
            Tournament.is_series_parent.is_(False),
            Tournament.is_festival_parent.is_(False),
        )
        if status:
            query = query.where(Tournament.status == status)
        return list(self.db.scalars(query.order_by(Tournament.start_date.asc(), Tournament.id.asc())))

    def add_tournament(self, tournament: Tournament) -> Tournament:
        self.db.add(tournament)
        self.db.commit()
        self.db.refresh(tournament)
        return tournament

    def save_tournament(self, tournament: Tournament) -> Tournament:
        self.db.commit()
        self.db.refresh(tournament)
        return tournament

    def delete_tournament(self, tournament: Tournament) -> None:
        self.db.delete(tournament)
        self.db.commit()

    # --- registrations ---

    def is_registered(self, tournament_id: int, user_id: int) -> bool:
        return self._registration_id(tournament_id, user_id) is not None

    def get_registration(self, tournament_id: int, user_id: int) -> Optional[TournamentRegistration]:
        return self.db.scalar(
            select(TournamentRegistration).where(
                TournamentRegistration.tournament_id == tournament_id,
                TournamentRegistration.user_id == user_id,
            )
        )

    def count_registrations(self, tournament_id: int) -> int:
        return self.db.scalar(
            select(func.count(TournamentRegistration.id)).where(
                TournamentRegistration.tournament_id == tournament_id
            )
        ) or 0

    def add_registration(self, registration: TournamentRegistration) -> int:
        """
        Insert ``registration`` and take one seat, atomically.

        Returns the tournament's participant count after the insert. Raises
        CapacityExceededError when no seat was left at update time and
        ConflictError when the (tournament, user) pair already exists.
        """
        tournament_id = registration.tournament_id
        try:
            result = self.db.execute(
                update(Tournament)
                .where(
                    Tournament.id == tournament_id,
                    or_(
                        Tournament.max_participants.is_(None),
                        Tournament.current_participants < Tournament.max_participants,
                    ),
                )
                .values(
                    current_participants=Tournament.current_participants + 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if self._tournament_exists(tournament_id):
                    raise CapacityExceededError()
                raise NotFoundError("Tournament not found")

            self.db.add(registration)
            self.db.flush()
            participants = self._participant_count(tournament_id)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(
                "You are already registered for this tournament",
                reason=RejectionReason.ALREADY_REGISTERED,
            ) from exc
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(registration)
        return participants

    def remove_registration(self, tournament_id: int, user_id: int) -> Tuple[int, int]:
        """
        Delete the (tournament, user) registration and free its seat, atomically.

        Returns ``(registration_id, participants_after)``.
        """
        try:
            registration_id = self._registration_id(tournament_id, user_id)
            deleted = 0
            if registration_id is not None:
                deleted = self.db.execute(
                    delete(TournamentRegistration).where(TournamentRegistration.id == registration_id)
                ).rowcount
            if not deleted:
                raise NotFoundError("You are not registered for this tournament")

            result = self.db.execute(
                update(Tournament)
                .where(Tournament.id == tournament_id, Tournament.current_participants > 0)
                .values(
                    current_participants=Tournament.current_participants - 1,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                logger.warning(
                    "Participant counter for tournament %s was already zero on withdrawal", tournament_id
                )
            participants = self._participant_count(tournament_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return registration_id, participants

    def list_participants(
        self, tournament_id: int, page: int = 1, limit: int = 50
    ) -> Tuple[List[TournamentRegistration], int]:
        offset = (page - 1) * limit
        participants = list(
            self.db.scalars(
                select(TournamentRegistration)
                .where(TournamentRegistration.tournament_id == tournament_id)
                .order_by(TournamentRegistration.created_at.asc(), TournamentRegistration.id.asc())
                .offset(offset)
                .limit(limit)
            )
        )
        return participants, self.count_registrations(tournament_id)

    def list_user_tournaments(self, user_id: int) -> List[Tournament]:
        return list(
            self.db.scalars(
                select(Tournament)
                .join(TournamentRegistration, TournamentRegistration.tournament_id == Tournament.id)
                .where(TournamentRegistration.user_id == user_id)
                .order_by(Tournament.start_date.asc())
            )
        )

    def find_completed_refund(self, registration_id: int) -> Optional[TournamentRefund]:
        return self.db.scalar(
            select(TournamentRefund).where(
                TournamentRefund.tournament_registration_id == registration_id,
                TournamentRefund.status == "completed",
            )
        )

    # --- series ---

    def list_editions(self, parent_id: int) -> List[Tournament]:
        return list(
            self.db.scalars(
                select(Tournament)
                .where(
                    Tournament.parent_tournament_id == parent_id,
                    Tournament.is_series_parent.is_(False),
                    Tournament.is_festival_parent.is_(False),
                )
                .order_by(Tournament.start_date.desc(), Tournament.id.desc())
            )
        )

    def list_series_parents(self) -> List[Tuple[Tournament, int]]:
        """Every series parent with its edition count, newest first."""
        editions = aliased(Tournament)
        rows = self.db.execute(
            select(Tournament, func.count(editions.id))
            .outerjoin(
                editions,
                (editions.parent_tournament_id == Tournament.id) & editions.is_series_parent.is_(False),
            )
            .where(Tournament.is_series_parent.is_(True))
            .group_by(Tournament.id)
            .order_by(Tournament.created_at.desc(), Tournament.id.desc())
        )
        return [(tournament, count) for tournament, count in rows]

    def list_festival_events(self, festival_id: int) -> List[Tournament]:
        return list(
            self.db.scalars(
                select(Tournament)
                .where(Tournament.parent_tournament_id == festival_id)
                .order_by(Tournament.start_date.asc(), Tournament.created_at.asc(), Tournament.id.asc())
            )
        )

    def list_reviews(
        self, tournament_ids: Sequence[int], page: int = 1, limit: int = 20
    ) -> List[Tuple[TournamentReview, str, str, object]]:
        offset = (page - 1) * limit
        rows = self.db.execute(
            select(TournamentReview, User.name, Tournament.name, Tournament.start_date)
            .join(User, TournamentReview.reviewer_id == User.id)
            .join(Tournament, TournamentReview.tournament_id == Tournament.id)
            .where(TournamentReview.tournament_id.in_(tournament_ids))
            .order_by(TournamentReview.created_at.desc(), TournamentReview.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [tuple(row) for row in rows]

    def review_stats(self, tournament_ids: Sequence[int]) -> Tuple[int, float]:
        total, average = self.db.execute(
            select(func.count(TournamentReview.id), func.avg(TournamentReview.rating)).where(
                TournamentReview.tournament_id.in_(tournament_ids)
            )
        ).one()
        return total or 0, float(average or 0)

    # --- helpers ---

    def _registration_id(self, tournament_id: int, user_id: int) -> Optional[int]:
        return self.db.scalar(
            select(TournamentRegistration.id).where(
                TournamentRegistration.tournament_id == tournament_id,
                TournamentRegistration.user_id == user_id,
            )
        )

    def _tournament_exists(self, tournament_id: int) -> bool:
        return self.db.scalar(select(Tournament.id).where(Tournament.id == tournament_id)) is not None

    def _participant_count(self, tournament_id: int) -> int:
        return self.db.scalar(
            select(Tournament.current_participants).where(Tournament.id == tournament_id)
        )
