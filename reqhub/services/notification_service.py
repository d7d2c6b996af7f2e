import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select, delete

from reqhub.core.errors import NotFoundError
from reqhub.models.notification import Notification
from reqhub.models.user import User
from reqhub.schemas.common import Pagination, UserRef
from reqhub.schemas.notification import NotificationRead
from reqhub.services.persistence import load_users

logger = logging.getLogger(__name__)


def notify(
    session: Session,
    recipient_id: Optional[int],
    type: str,
    title: str,
    message: str,
    sender_id: Optional[int] = None,
    link: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
) -> Optional[Notification]:
    """Creates a notification in a separate session. Failures are logged, never raised."""
    if recipient_id is None or recipient_id == sender_id:
        return None
    try:
        with Session(session.get_bind()) as inbox:
            notification = Notification(
                recipient_id=recipient_id,
                sender_id=sender_id,
                type=type,
                title=title,
                message=message,
                link=link,
                target_type=target_type,
                target_id=target_id,
            )
            inbox.add(notification)
            inbox.commit()
            inbox.refresh(notification)
            return notification
    except Exception:
        logger.exception("Error creating notification for user %s", recipient_id)
        return None


def to_notification_read(notification: Notification, sender: Optional[User]) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        sender=UserRef.model_validate(sender) if sender else None,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        link=notification.link,
        target_type=notification.target_type,
        target_id=notification.target_id,
        read=notification.read,
        created_at=notification.created_at,
    )


def list_notifications(
    session: Session, user: User, page: int = 1, limit: int = 20, unread_only: bool = False
) -> Tuple[List[NotificationRead], int, Pagination]:
    query = select(Notification).where(Notification.recipient_id == user.id)
    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712
    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    unread_count = session.exec(
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_id == user.id, Notification.read == False)  # noqa: E712
    ).one()
    notifications = session.exec(
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    senders = load_users(session, (n.sender_id for n in notifications))
    data = [to_notification_read(n, senders.get(n.sender_id)) for n in notifications]
    return data, unread_count, Pagination.build(page, limit, total)


def _own_notification(session: Session, user: User, notification_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    if not notification or notification.recipient_id != user.id:
        raise NotFoundError("Notification not found")
    return notification


def mark_read(session: Session, user: User, notification_id: int) -> NotificationRead:
    notification = _own_notification(session, user, notification_id)
    notification.read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    sender = session.get(User, notification.sender_id) if notification.sender_id else None
    return to_notification_read(notification, sender)


def mark_all_read(session: Session, user: User) -> None:
    unread = session.exec(
        select(Notification).where(Notification.recipient_id == user.id, Notification.read == False)  # noqa: E712
    ).all()
    for notification in unread:
        notification.read = True
        session.add(notification)
    session.commit()


def delete_notification(session: Session, user: User, notification_id: int) -> None:
    notification = _own_notification(session, user, notification_id)
    session.delete(notification)
    session.commit()


def delete_all(session: Session, user: User) -> None:
    session.exec(delete(Notification).where(Notification.recipient_id == user.id))
    session.commit()
