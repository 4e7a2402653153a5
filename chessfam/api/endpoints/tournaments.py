from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from chessfam.api.dependencies import (
    get_registration_coordinator, get_tournament_service, get_withdrawal_coordinator,
)
from chessfam.core.security import get_current_user_id
from chessfam.schemas import registration_schemas, tournament_schemas
from chessfam.services.registration_service import RegistrationCoordinator
from chessfam.services.tournament_service import TournamentService
from chessfam.services.withdrawal_service import WithdrawalCoordinator

router = APIRouter()

@router.get("/", response_model=List[tournament_schemas.TournamentRead])
async def list_tournaments_endpoint(
    status_filter: Optional[tournament_schemas.TournamentStatus] = Query(None, alias="status"),
    service: TournamentService = Depends(get_tournament_service),
):
    return service.list_tournaments(status=status_filter.value if status_filter else None)

@router.get("/mine", response_model=List[tournament_schemas.TournamentRead])
async def get_user_tournaments_endpoint(
    service: TournamentService = Depends(get_tournament_service),
    current_user_id: int = Depends(get_current_user_id),
):
    return service.get_user_tournaments(current_user_id)

@router.post("/", response_model=tournament_schemas.TournamentRead, status_code=status.HTTP_201_CREATED)
async def create_tournament_endpoint(
    tournament_in: tournament_schemas.TournamentCreate,
    service: TournamentService = Depends(get_tournament_service),
    current_user_id: int = Depends(get_current_user_id),
):
    return service.create_tournament(tournament_in, organizer_id=current_user_id)

@router.get("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
async def get_tournament_endpoint(
    tournament_id: int,
    service: TournamentService = Depends(get_tournament_service),
):
    return service.get_tournament(tournament_id)

@router.put("/{tournament_id}", response_model=tournament_schemas.TournamentRead)
async def update_tournament_endpoint(
    tournament_id: int,
    tournament_in: tournament_schemas.TournamentUpdate,
    service: TournamentService = Depends(get_tournament_service),
    current_user_id: int = Depends(get_current_user_id),
):
    return service.update_tournament(tournament_id, tournament_in, current_user_id=current_user_id)

@router.delete("/{tournament_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tournament_endpoint(
    tournament_id: int,
    service: TournamentService = Depends(get_tournament_service),
    current_user_id: int = Depends(get_current_user_id),
):
    service.delete_tournament(tournament_id, current_user_id=current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.patch("/{tournament_id}/approval", response_model=tournament_schemas.TournamentRead)
async def set_approval_status_endpoint(
    tournament_id: int,
    approval_in: tournament_schemas.ApprovalUpdate,
    service: TournamentService = Depends(get_tournament_service),
    current_user_id: int = Depends(get_current_user_id),
):
    return service.set_approval_status(tournament_id, approval_in.approval_status, current_user_id=current_user_id)

@router.get("/{tournament_id}/participants", response_model=registration_schemas.ParticipantPage)
async def list_participants_endpoint(
    tournament_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: TournamentService = Depends(get_tournament_service),
):
    participants, total = service.list_participants(tournament_id, page=page, limit=limit)
    return {"participants": participants, "total": total}

@router.get("/{tournament_id}/fee-quote", response_model=registration_schemas.FeePreview)
def get_fee_quote_endpoint(
    tournament_id: int,
    coordinator: RegistrationCoordinator = Depends(get_registration_coordinator),
    current_user_id: int = Depends(get_current_user_id),
):
    return coordinator.preview_fee(tournament_id, current_user_id)

@router.get("/{tournament_id}/registration", response_model=registration_schemas.RegistrationCheck)
async def get_registration_status_endpoint(
    tournament_id: int,
    service: TournamentService = Depends(get_tournament_service),
    current_user_id: int = Depends(get_current_user_id),
):
    return service.get_registration_status(tournament_id, current_user_id)

@router.post(
    "/{tournament_id}/register",
    response_model=registration_schemas.RegistrationRead,
    status_code=status.HTTP_201_CREATED,
)
def register_for_tournament_endpoint(
    tournament_id: int,
    coordinator: RegistrationCoordinator = Depends(get_registration_coordinator),
    current_user_id: int = Depends(get_current_user_id),
):
    return coordinator.register(tournament_id, current_user_id)

@router.delete("/{tournament_id}/register", status_code=status.HTTP_204_NO_CONTENT)
def withdraw_from_tournament_endpoint(
    tournament_id: int,
    coordinator: WithdrawalCoordinator = Depends(get_withdrawal_coordinator),
    current_user_id: int = Depends(get_current_user_id),
):
    coordinator.withdraw(tournament_id, current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
