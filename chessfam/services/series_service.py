from datetime import datetime
from typing import Callable, List

from chessfam.core.clock import utcnow
from chessfam.core.errors import NotFoundError, ValidationError
from chessfam.models.tournament import Tournament
from chessfam.schemas.series_schemas import (
    SeriesOverview, SeriesReview, SeriesReviewPage, SeriesStats, SeriesSummary,
)
from chessfam.schemas.tournament_schemas import TournamentRead
from chessfam.services.tournament_store import TournamentStore


class SeriesAggregator:
    """Read-only rollups over a series parent and its editions."""

    def __init__(self, store: TournamentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def resolve_parent(self, tournament_id: int) -> Tournament:
        tournament = self.store.require_tournament(tournament_id)
        if tournament.is_series_parent:
            return tournament
        if tournament.parent_tournament_id is None:
            raise ValidationError("This tournament is not part of a series")

        parent = self.store.get_tournament(tournament.parent_tournament_id)
        if parent is None or not parent.is_series_parent:
            raise NotFoundError("Series parent not found")
        return parent

    def get_series(self, tournament_id: int) -> SeriesOverview:
        parent = self.resolve_parent(tournament_id)
        editions = self.store.list_editions(parent.id)
        now = self.clock()

        upcoming = sorted(
            (ed for ed in editions if ed.start_date >= now and ed.status == "upcoming"),
            key=lambda ed: ed.start_date,
        )
        past = [ed for ed in editions if ed.start_date < now or ed.status == "completed"]

        return SeriesOverview(
            parent=TournamentRead.model_validate(parent),
            editions=[TournamentRead.model_validate(ed) for ed in editions],
            stats=SeriesStats(
                total_editions=len(editions),
                total_participants=sum(ed.current_participants or 0 for ed in editions),
                next_edition=TournamentRead.model_validate(upcoming[0]) if upcoming else None,
                past_editions=[TournamentRead.model_validate(ed) for ed in past],
                upcoming_editions=[TournamentRead.model_validate(ed) for ed in upcoming],
            ),
        )

    def get_series_images(self, tournament_id: int) -> List[str]:
        """The parent's cover first, then each edition's cover followed by its gallery."""
        parent = self.resolve_parent(tournament_id)
        images: List[str] = []
        if parent.image:
            images.append(parent.image)
        for edition in self.store.list_editions(parent.id):
            if edition.image:
                images.append(edition.image)
            images.extend(edition.images or [])
        return images

    def get_series_reviews(self, tournament_id: int, page: int = 1, limit: int = 20) -> SeriesReviewPage:
        parent = self.resolve_parent(tournament_id)
        edition_ids = [edition.id for edition in self.store.list_editions(parent.id)]
        if not edition_ids:
            return SeriesReviewPage(reviews=[], total=0, average_rating=0)

        total, average = self.store.review_stats(edition_ids)
        reviews = [
            SeriesReview(
                id=review.id,
                tournament_id=review.tournament_id,
                tournament_name=tournament_name,
                tournament_date=tournament_date,
                reviewer_id=review.reviewer_id,
                reviewer_name=reviewer_name,
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
            )
            for review, reviewer_name, tournament_name, tournament_date in self.store.list_reviews(
                edition_ids, page=page, limit=limit
            )
        ]
        return SeriesReviewPage(reviews=reviews, total=total, average_rating=average)

    def list_series(self) -> List[SeriesSummary]:
        return [
            SeriesSummary(**TournamentRead.model_validate(parent).model_dump(), edition_count=count)
            for parent, count in self.store.list_series_parents()
        ]

    def get_festival_events(self, tournament_id: int) -> List[TournamentRead]:
        """The events grouped under a festival, soonest first."""
        festival = self.store.require_tournament(tournament_id)
        if not festival.is_festival_parent:
            raise ValidationError("This tournament is not a festival")
        return [TournamentRead.model_validate(event) for event in self.store.list_festival_events(festival.id)]
