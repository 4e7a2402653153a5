from typing import List

from fastapi import APIRouter, Depends, Query

from chessfam.api.dependencies import get_series_aggregator
from chessfam.schemas import series_schemas, tournament_schemas
from chessfam.services.series_service import SeriesAggregator

router = APIRouter()

@router.get("/series", response_model=List[series_schemas.SeriesSummary])
async def list_series_endpoint(
    aggregator: SeriesAggregator = Depends(get_series_aggregator),
):
    return aggregator.list_series()

# Any edition id works here; the parent series is resolved from it.

@router.get("/{tournament_id}/series", response_model=series_schemas.SeriesOverview)
async def get_series_endpoint(
    tournament_id: int,
    aggregator: SeriesAggregator = Depends(get_series_aggregator),
):
    return aggregator.get_series(tournament_id)

@router.get("/{tournament_id}/series/images", response_model=List[str])
async def get_series_images_endpoint(
    tournament_id: int,
    aggregator: SeriesAggregator = Depends(get_series_aggregator),
):
    return aggregator.get_series_images(tournament_id)

@router.get("/{tournament_id}/series/reviews", response_model=series_schemas.SeriesReviewPage)
async def get_series_reviews_endpoint(
    tournament_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    aggregator: SeriesAggregator = Depends(get_series_aggregator),
):
    return aggregator.get_series_reviews(tournament_id, page=page, limit=limit)

@router.get("/{tournament_id}/festival-events", response_model=List[tournament_schemas.TournamentRead])
async def get_festival_events_endpoint(
    tournament_id: int,
    aggregator: SeriesAggregator = Depends(get_series_aggregator),
):
    return aggregator.get_festival_events(tournament_id)
