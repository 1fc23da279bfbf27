"""Activity router - FastAPI endpoints for billable activities"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...database import get_db
from .schemas import ActivityCreate, ActivityResponse
from .service import ActivityService

router = APIRouter(prefix="/activities", tags=["Activities"])


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    """Dependency injection for ActivityService"""
    return ActivityService(db)


@router.get("", response_model=list[ActivityResponse])
async def list_activities(
    clientId: Optional[str] = None,
    flagged: Optional[bool] = None,
    user: CurrentUser = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    activities = service.get_activities(user, clientId, flagged)
    return [ActivityResponse.from_model(a) for a in activities]


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    return ActivityResponse.from_model(service.get_activity(activity_id, user))


@router.post("", response_model=ActivityResponse, status_code=201)
async def create_activity(
    data: ActivityCreate,
    user: CurrentUser = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Log a manual (non-AI) activity"""
    return ActivityResponse.from_model(service.create_activity(data, user))


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ActivityService = Depends(get_activity_service),
):
    """Delete an activity. Activities already on an invoice are locked."""
    return service.delete_activity(activity_id, user)
