from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.common import MessageResponse
from reqhub.schemas.notification import NotificationListResponse, NotificationResponse
from reqhub.services import notification_service

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    unread: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    data, unread_count, pagination = notification_service.list_notifications(
        session, current_user, page=page, limit=limit, unread_only=unread
    )
    return NotificationListResponse(data=data, unread_count=unread_count, pagination=pagination)


# registered before /{notification_id}/read so "read-all" is not taken as an id
@router.put("/read-all", response_model=MessageResponse)
def mark_all_read(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    notification_service.mark_all_read(session, current_user)
    return MessageResponse(message="All notifications marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return NotificationResponse(data=notification_service.mark_read(session, current_user, notification_id))


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    notification_service.delete_notification(session, current_user, notification_id)
    return MessageResponse(message="Notification deleted")


@router.delete("/", response_model=MessageResponse)
def delete_all(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    notification_service.delete_all(session, current_user)
    return MessageResponse(message="All notifications deleted")
