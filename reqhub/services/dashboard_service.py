from datetime import datetime, timedelta
from typing import Dict

from sqlalchemy import func
from sqlmodel import Session, select, or_

from reqhub.models.activity_log import ActivityLog
from reqhub.models.asset import Asset
from reqhub.models.project import Project, ProjectMember
from reqhub.models.requirement import Requirement
from reqhub.models.user import User
from reqhub.schemas.dashboard import DashboardStats, Overview

RECENT_LIMIT = 5
ACTIVITY_LIMIT = 10
DEADLINE_WINDOW_DAYS = 7


def _involved(user: User, include_client: bool = True):
    """Projects the user created or works on, and optionally the ones they are client of."""
    member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user.id)
    conditions = [Project.created_by_id == user.id, Project.id.in_(member_of)]
    if include_client:
        conditions.append(Project.client_id == user.id)
    return or_(*conditions)


def _count(session: Session, model, *conditions) -> int:
    return session.exec(select(func.count()).select_from(model).where(*conditions)).one()


def _grouped(session: Session, column, *conditions) -> Dict[str, int]:
    rows = session.exec(select(column, func.count()).where(*conditions).group_by(column)).all()
    return {key: count for key, count in rows}


def dashboard_stats(session: Session, user: User) -> DashboardStats:
    requirements_by_status = _grouped(session, Requirement.status)
    total_all = sum(requirements_by_status.values())
    completed = requirements_by_status.get("completed", 0)

    recent_projects = session.exec(
        select(Project)
        .where(_involved(user, include_client=False))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .limit(RECENT_LIMIT)
    ).all()

    recent_requirements = session.exec(
        select(Requirement, Project.name)
        .join(Project, Project.id == Requirement.project_id, isouter=True)
        .order_by(Requirement.created_at.desc(), Requirement.id.desc())
        .limit(RECENT_LIMIT)
    ).all()

    recent_activity = session.exec(
        select(ActivityLog)
        .where(ActivityLog.user_id == user.id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(ACTIVITY_LIMIT)
    ).all()

    now = datetime.utcnow()
    upcoming = session.exec(
        select(Project)
        .where(
            Project.deadline >= now,
            Project.deadline <= now + timedelta(days=DEADLINE_WINDOW_DAYS),
            Project.status != "completed",
        )
        .order_by(Project.deadline)
        .limit(RECENT_LIMIT)
    ).all()

    return DashboardStats(
        overview=Overview(
            total_projects=_count(session, Project, _involved(user)),
            total_requirements=_count(session, Requirement, Requirement.created_by_id == user.id),
            total_assets=_count(session, Asset, Asset.uploaded_by_id == user.id),
            completion_rate=round(completed / total_all * 100) if total_all else 0,
        ),
        projects_by_status=_grouped(session, Project.status, _involved(user, include_client=False)),
        requirements_by_status=requirements_by_status,
        requirements_by_priority=_grouped(session, Requirement.priority),
        recent_projects=[
            {"id": p.id, "name": p.name, "status": p.status, "priority": p.priority, "deadline": p.deadline}
            for p in recent_projects
        ],
        recent_requirements=[
            {
                "id": r.id,
                "title": r.title,
                "status": r.status,
                "priority": r.priority,
                "project": {"id": r.project_id, "name": project_name} if project_name else None,
            }
            for r, project_name in recent_requirements
        ],
        recent_activity=[
            {"id": a.id, "action": a.action, "description": a.description, "created_at": a.created_at}
            for a in recent_activity
        ],
        upcoming_deadlines=[
            {"id": p.id, "name": p.name, "deadline": p.deadline, "status": p.status} for p in upcoming
        ],
    )
