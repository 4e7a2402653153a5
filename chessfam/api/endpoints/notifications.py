from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chessfam.api.dependencies import get_db
from chessfam.core.security import get_current_user_id
from chessfam.schemas import notification_schemas
from chessfam.services import notification_service

router = APIRouter()

@router.get("/", response_model=List[notification_schemas.NotificationRead])
async def get_user_notifications_endpoint(
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 100,
):
    return notification_service.get_user_notifications(
        db=db, user_id=current_user_id, unread_only=unread_only, skip=skip, limit=limit
    )

@router.patch("/{notification_id}/read", response_model=notification_schemas.NotificationRead)
async def mark_notification_as_read_endpoint(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    return notification_service.mark_notification_as_read(
        db=db, notification_id=notification_id, current_user_id=current_user_id
    )

@router.post("/read-all", response_model=notification_schemas.MarkedRead)
async def mark_all_user_notifications_as_read_endpoint(
    db: Session = Depends(get_db),
    current_user_id: int = Depends(get_current_user_id),
):
    updated = notification_service.mark_all_user_notifications_as_read(db=db, current_user_id=current_user_id)
    return {"updated": updated}
