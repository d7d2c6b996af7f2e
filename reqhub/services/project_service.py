import logging
from typing import List

from sqlmodel import Session, select, delete, or_

from reqhub.core.errors import NotFoundError, ValidationError
from reqhub.core.permissions import CLIENT, TEAM_MEMBER
from reqhub.models.asset import Asset
from reqhub.models.project import Project, ProjectMember
from reqhub.models.requirement import Requirement
from reqhub.models.user import User
from reqhub.schemas.common import UserRef
from reqhub.schemas.project import ClientInfo, ProjectCreate, ProjectRead, ProjectUpdate
from reqhub.services.asset_service import purge_asset
from reqhub.services.notification_service import notify
from reqhub.services.persistence import get_or_404, load_users, save
from reqhub.services.requirement_service import purge_requirement

logger = logging.getLogger(__name__)


def member_ids(session: Session, project_id: int) -> List[int]:
    return list(
        session.exec(select(ProjectMember.user_id).where(ProjectMember.project_id == project_id)).all()
    )


def to_project_read(session: Session, project: Project) -> ProjectRead:
    team = member_ids(session, project.id)
    users = load_users(session, [project.client_id, project.created_by_id, *team])

    def ref(user_id):
        user = users.get(user_id)
        return UserRef.model_validate(user) if user else None

    client_info = None
    if project.client_email or project.client_name:
        client_info = ClientInfo(name=project.client_name, email=project.client_email)

    return ProjectRead(
        id=project.id,
        name=project.name,
        description=project.description,
        status=project.status,
        priority=project.priority,
        start_date=project.start_date,
        deadline=project.deadline,
        tags=project.tags or [],
        client=ref(project.client_id),
        client_info=client_info,
        team_members=[ref(uid) for uid in team if uid in users],
        created_by=ref(project.created_by_id),
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def visible_projects_query(user: User):
    query = select(Project)
    if user.role == CLIENT:
        query = query.where(or_(Project.client_id == user.id, Project.client_email == user.email.lower()))
    elif user.role == TEAM_MEMBER:
        query = query.join(ProjectMember, ProjectMember.project_id == Project.id).where(
            ProjectMember.user_id == user.id
        )
    return query


def list_projects(session: Session, user: User) -> List[Project]:
    return session.exec(
        visible_projects_query(user).order_by(Project.created_at.desc(), Project.id.desc())
    ).all()


def can_view(session: Session, user: User, project: Project) -> bool:
    if user.role == CLIENT:
        return project.client_id == user.id or project.client_email == user.email.lower()
    if user.role == TEAM_MEMBER:
        return user.id in member_ids(session, project.id)
    return True


def get_project(session: Session, user: User, project_id: int) -> Project:
    project = session.get(Project, project_id)
    if not project or not can_view(session, user, project):
        raise NotFoundError("Project not found")
    return project


def _apply_client(session: Session, project: Project, client_id, client_info) -> None:
    """A direct user id wins; otherwise the contact email links to an existing
    user or is kept until someone registers with it."""
    if client_id is not None:
        if session.get(User, client_id) is None:
            raise ValidationError("Client user not found")
        project.client_id = client_id
    if client_info is None:
        return
    email = client_info.email.lower() if client_info.email else None
    project.client_name = client_info.name
    project.client_email = email
    if email and client_id is None:
        existing = session.exec(select(User).where(User.email == email)).first()
        if existing:
            project.client_id = existing.id
            project.client_name = client_info.name or existing.name


def create_project(session: Session, project_in: ProjectCreate, creator: User) -> Project:
    project = Project(
        name=project_in.name.strip(),
        description=project_in.description,
        status=project_in.status,
        priority=project_in.priority,
        deadline=project_in.deadline,
        tags=[t.strip() for t in project_in.tags if t.strip()],
        created_by_id=creator.id,
    )
    if project_in.start_date:
        project.start_date = project_in.start_date
    _apply_client(session, project, project_in.client, project_in.client_info)
    return save(session, project)


def update_project(session: Session, project_id: int, project_in: ProjectUpdate) -> Project:
    project = get_or_404(session, Project, project_id, "Project")
    data = project_in.model_dump(exclude_unset=True)
    client_id = data.pop("client", None)
    data.pop("client_info", None)
    for key, value in data.items():
        if value is not None:
            setattr(project, key, value)
    if client_id is not None or project_in.client_info is not None:
        _apply_client(session, project, client_id, project_in.client_info)
    return save(session, project)


def delete_project(session: Session, project_id: int) -> str:
    """Deletes the project together with its requirements, assets and team
    links, and returns its name."""
    project = get_or_404(session, Project, project_id, "Project")
    name = project.name
    requirements = session.exec(select(Requirement).where(Requirement.project_id == project_id)).all()
    assets = session.exec(select(Asset).where(Asset.project_id == project_id)).all()
    for requirement in requirements:
        purge_requirement(session, requirement)
    for asset in assets:
        purge_asset(session, asset)
    session.exec(delete(ProjectMember).where(ProjectMember.project_id == project_id))
    session.delete(project)
    session.commit()
    logger.info(
        "Deleted project %s with %d requirement(s) and %d asset(s)", project_id, len(requirements), len(assets)
    )
    return name


def available_members(session: Session, project_id: int) -> List[User]:
    get_or_404(session, Project, project_id, "Project")
    current = member_ids(session, project_id)
    query = select(User).where(User.role == TEAM_MEMBER)
    if current:
        query = query.where(User.id.not_in(current))
    return session.exec(query.order_by(User.name)).all()


def add_team_member(session: Session, project_id: int, user_id: int, actor: User) -> Project:
    project = get_or_404(session, Project, project_id, "Project")
    user = get_or_404(session, User, user_id, "User")
    if user_id in member_ids(session, project_id):
        raise ValidationError("User is already a team member")

    session.add(ProjectMember(project_id=project_id, user_id=user_id))
    save(session, project)

    notify(
        session,
        user.id,
        "project_assigned",
        "Added to project",
        f"You have been added to the project: {project.name}",
        sender_id=actor.id,
        link=f"/projects/{project.id}",
        target_type="Project",
        target_id=project.id,
    )
    return project


def remove_team_member(session: Session, project_id: int, user_id: int) -> Project:
    project = get_or_404(session, Project, project_id, "Project")
    session.exec(
        delete(ProjectMember).where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
    )
    return save(session, project)
