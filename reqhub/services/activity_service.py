"""Audit trail.

``with_audit`` wraps an endpoint so that a successful return appends an
ActivityLog row. Entries are written through their own session and any failure
is logged and dropped: the audited operation has already succeeded.
"""
import functools
import inspect
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, select

from reqhub.core.permissions import ADMIN
from reqhub.models.activity_log import ActivityLog
from reqhub.models.user import User
from reqhub.schemas.activity import ActivityRead, ActivityStats, CountItem, TopUser
from reqhub.schemas.common import Pagination, UserRef
from reqhub.services.persistence import load_users

logger = logging.getLogger(__name__)

Describe = Union[str, Callable[[Dict[str, Any], Any], str]]
Target = Callable[[Dict[str, Any], Any], Tuple[Optional[str], Optional[int]]]
Actor = Callable[[Dict[str, Any], Any], Optional[int]]


def record_activity(
    bind: Engine,
    user_id: int,
    action: str,
    description: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Optional[ActivityLog]:
    try:
        with Session(bind) as log_session:
            entry = ActivityLog(
                user_id=user_id,
                action=action,
                description=description,
                target_type=target_type,
                target_id=target_id,
                meta=metadata,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            log_session.add(entry)
            log_session.commit()
            log_session.refresh(entry)
            return entry
    except Exception:
        logger.exception("Activity logging error (action=%s, user=%s)", action, user_id)
        return None


def _scrub(body: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in body.items() if "password" not in k.lower()}


def request_metadata(request, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    for value in kwargs.values():
        # request payloads only; table rows such as current_user are skipped
        if isinstance(value, BaseModel) and not isinstance(value, SQLModel):
            body.update(_scrub(value.model_dump(mode="json")))
    meta: Dict[str, Any] = {"body": body}
    if request is not None:
        meta["method"] = request.method
        meta["path"] = request.url.path
    return meta


def _client_info(request) -> Tuple[Optional[str], Optional[str]]:
    if request is None:
        return None, None
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


def with_audit(action: str, describe: Describe, target: Optional[Target] = None, actor: Optional[Actor] = None):
    """Decorates an endpoint so that each successful call is written to the activity log.

    The endpoint must accept ``session`` and either ``current_user`` or an
    ``actor`` callable resolving the acting user id from the endpoint arguments
    and result. ``request`` is optional and adds method, path and client info.
    """

    def _audit(kwargs: Dict[str, Any], result: Any) -> None:
        session = kwargs.get("session")
        if session is None:
            return
        if actor is not None:
            user_id = actor(kwargs, result)
        else:
            user = kwargs.get("current_user")
            user_id = user.id if user is not None else None
        if user_id is None:
            return
        description = describe(kwargs, result) if callable(describe) else describe
        target_type, target_id = target(kwargs, result) if target else (None, None)
        request = kwargs.get("request")
        ip, agent = _client_info(request)
        record_activity(
            session.get_bind(),
            user_id,
            action,
            description,
            target_type=target_type,
            target_id=target_id,
            metadata=request_metadata(request, kwargs),
            ip_address=ip,
            user_agent=agent,
        )

    def decorator(handler):
        if inspect.iscoroutinefunction(handler):

            @functools.wraps(handler)
            async def async_wrapper(*args, **kwargs):
                result = await handler(*args, **kwargs)
                _audit(kwargs, result)
                return result

            return async_wrapper

        @functools.wraps(handler)
        def wrapper(*args, **kwargs):
            result = handler(*args, **kwargs)
            _audit(kwargs, result)
            return result

        return wrapper

    return decorator


def to_activity_read(log: ActivityLog, users: Dict[int, User]) -> ActivityRead:
    user = users.get(log.user_id)
    return ActivityRead(
        id=log.id,
        user=UserRef.model_validate(user) if user else None,
        action=log.action,
        description=log.description,
        target_type=log.target_type,
        target_id=log.target_id,
        metadata=log.meta,
        created_at=log.created_at,
    )


def _to_reads(session: Session, logs: List[ActivityLog]) -> List[ActivityRead]:
    users = load_users(session, (log.user_id for log in logs))
    return [to_activity_read(log, users) for log in logs]


def list_activity(
    session: Session,
    user: User,
    page: int = 1,
    limit: int = 20,
    user_id: Optional[int] = None,
    action: Optional[str] = None,
    target_type: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> Tuple[List[ActivityRead], Pagination]:
    """Admins see everyone's activity (optionally one user's), others only their own."""
    conditions = []
    if user.role != ADMIN:
        conditions.append(ActivityLog.user_id == user.id)
    elif user_id is not None:
        conditions.append(ActivityLog.user_id == user_id)
    if action:
        conditions.append(ActivityLog.action == action)
    if target_type:
        conditions.append(ActivityLog.target_type == target_type)
    if date_from:
        conditions.append(ActivityLog.created_at >= date_from)
    if date_to:
        conditions.append(ActivityLog.created_at <= date_to)
    return _page(session, conditions, page, limit)


def activity_feed(session: Session, page: int = 1, limit: int = 20) -> Tuple[List[ActivityRead], Pagination]:
    return _page(session, [], page, limit)


def _page(session: Session, conditions, page: int, limit: int):
    query = select(ActivityLog).where(*conditions)
    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    logs = session.exec(
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return _to_reads(session, logs), Pagination.build(page, limit, total)


def my_activity(session: Session, user: User, limit: int = 20) -> List[ActivityRead]:
    logs = session.exec(
        select(ActivityLog)
        .where(ActivityLog.user_id == user.id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
    ).all()
    return _to_reads(session, logs)


def activity_stats(session: Session, days: int = 7) -> ActivityStats:
    """Counts per action, per day and for the ten most active users since ``days`` ago."""
    since = ActivityLog.created_at >= datetime.utcnow() - timedelta(days=days)
    total = func.count().label("total")
    day = func.date(ActivityLog.created_at).label("day")

    by_action = session.exec(
        select(ActivityLog.action, total).where(since).group_by(ActivityLog.action).order_by(total.desc())
    ).all()
    by_day = session.exec(select(day, total).where(since).group_by(day).order_by(day)).all()
    top = session.exec(
        select(ActivityLog.user_id, total)
        .where(since)
        .group_by(ActivityLog.user_id)
        .order_by(total.desc())
        .limit(10)
    ).all()

    users = load_users(session, (uid for uid, _ in top))
    return ActivityStats(
        action_counts=[CountItem(key=action, count=count) for action, count in by_action],
        daily_counts=[CountItem(key=str(key), count=count) for key, count in by_day],
        top_users=[
            TopUser(id=uid, name=users[uid].name, email=users[uid].email, count=count)
            for uid, count in top
            if uid in users
        ],
    )
