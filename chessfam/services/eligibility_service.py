from datetime import datetime
from typing import TYPE_CHECKING, Optional

from chessfam.core.errors import ConflictError, RejectionReason, ValidationError
from chessfam.models.tournament import Tournament

if TYPE_CHECKING:
    from chessfam.services.tournament_store import TournamentStore

DEFAULT_PLAYER_RATING = 1500

def effective_rating(rating: Optional[int]) -> int:
    """Unrated players are treated as 1500."""
    return DEFAULT_PLAYER_RATING if rating is None else rating

def check_eligibility(
    tournament: Tournament,
    user_id: int,
    user_rating: Optional[int],
    store: "TournamentStore",
    now: datetime,
) -> None:
    """
    Raise the first reason ``user_id`` may not register for ``tournament``.

    Checks run in a fixed order and stop at the first failure. The duplicate
    check only queries ``store`` once the cheaper checks have passed; the
    store's unique constraint backs it up against concurrent inserts.
    """
    if tournament.is_container:
        raise ValidationError(
            "Series and festival listings do not take registrations; register for an edition instead",
            reason=RejectionReason.NOT_REGISTRABLE,
        )

    if tournament.status != "upcoming":
        raise ValidationError(
            "Registration is closed for this tournament",
            reason=RejectionReason.REGISTRATION_CLOSED,
        )

    if tournament.registration_deadline is not None and tournament.registration_deadline < now:
        raise ValidationError(
            "Registration deadline has passed",
            reason=RejectionReason.DEADLINE_PASSED,
        )

    if (
        tournament.max_participants is not None
        and tournament.current_participants >= tournament.max_participants
    ):
        raise ValidationError("Tournament is full", reason=RejectionReason.TOURNAMENT_FULL)

    if store.is_registered(tournament.id, user_id):
        raise ConflictError(
            "You are already registered for this tournament",
            reason=RejectionReason.ALREADY_REGISTERED,
        )

    rating = effective_rating(user_rating)
    if tournament.rating_min is not None and rating < tournament.rating_min:
        raise ValidationError(
            f"Your rating is below the minimum requirement ({tournament.rating_min})",
            reason=RejectionReason.BELOW_MINIMUM_RATING,
        )
    if tournament.rating_max is not None and rating > tournament.rating_max:
        raise ValidationError(
            f"Your rating is above the maximum requirement ({tournament.rating_max})",
            reason=RejectionReason.ABOVE_MAXIMUM_RATING,
        )
