from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user, require_roles
from reqhub.core.permissions import ADMIN
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.activity import ActivityListResponse, ActivityStatsResponse
from reqhub.services import activity_service

router = APIRouter()


@router.get("/", response_model=ActivityListResponse)
def list_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: Optional[int] = None,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    data, pagination = activity_service.list_activity(
        session,
        current_user,
        page=page,
        limit=limit,
        user_id=user,
        action=action,
        target_type=target_type,
        date_from=date_from,
        date_to=date_to,
    )
    return ActivityListResponse(data=data, pagination=pagination)


@router.get("/my", response_model=ActivityListResponse)
def my_activity(
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return ActivityListResponse(data=activity_service.my_activity(session, current_user, limit))


@router.get("/stats", response_model=ActivityStatsResponse)
def activity_stats(
    days: int = Query(7, ge=1, le=365),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(ADMIN)),
):
    return ActivityStatsResponse(data=activity_service.activity_stats(session, days))
