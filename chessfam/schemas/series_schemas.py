from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from .tournament_schemas import TournamentRead

class SeriesStats(BaseModel):
    total_editions: int
    total_participants: int
    next_edition: Optional[TournamentRead] = None
    past_editions: List[TournamentRead]
    upcoming_editions: List[TournamentRead]

class SeriesOverview(BaseModel):
    parent: TournamentRead
    editions: List[TournamentRead]
    stats: SeriesStats

class SeriesReview(BaseModel):
    id: int
    tournament_id: int
    tournament_name: str
    tournament_date: datetime
    reviewer_id: int
    reviewer_name: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

class SeriesReviewPage(BaseModel):
    reviews: List[SeriesReview]
    total: int
    average_rating: float

class SeriesSummary(TournamentRead):
    """A series parent as listed in the series directory."""
    edition_count: int = 0
