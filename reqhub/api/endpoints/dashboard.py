from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.activity import ActivityListResponse
from reqhub.schemas.dashboard import DashboardStatsResponse
from reqhub.services import activity_service, dashboard_service

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
def stats(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return DashboardStatsResponse(data=dashboard_service.dashboard_stats(session, current_user))


@router.get("/activity", response_model=ActivityListResponse)
def activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    data, pagination = activity_service.activity_feed(session, page, limit)
    return ActivityListResponse(data=data, pagination=pagination)
