from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user, require_roles
from reqhub.core.permissions import PROJECT_DELETERS, PROJECT_EDITORS
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.common import MessageResponse, UserRef
from reqhub.schemas.project import (
    MemberListResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
    TeamMemberAdd,
)
from reqhub.services import project_service
from reqhub.services.activity_service import with_audit

router = APIRouter()


def _project_target(kwargs, result):
    return "Project", result.data.id


@router.get("/", response_model=ProjectListResponse)
def list_projects(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    projects = project_service.list_projects(session, current_user)
    data = [project_service.to_project_read(session, p) for p in projects]
    return ProjectListResponse(count=len(data), data=data)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    project = project_service.get_project(session, current_user, project_id)
    return ProjectResponse(data=project_service.to_project_read(session, project))


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
@with_audit("project_create", lambda kw, res: f"Created project: {res.data.name}", target=_project_target)
def create_project(
    request: Request,
    project_in: ProjectCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(*PROJECT_EDITORS)),
):
    project = project_service.create_project(session, project_in, current_user)
    return ProjectResponse(data=project_service.to_project_read(session, project))


@router.put("/{project_id}", response_model=ProjectResponse)
@with_audit("project_update", lambda kw, res: f"Updated project: {res.data.name}", target=_project_target)
def update_project(
    request: Request,
    project_id: int,
    project_in: ProjectUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(*PROJECT_EDITORS)),
):
    project = project_service.update_project(session, project_id, project_in)
    return ProjectResponse(data=project_service.to_project_read(session, project))


@router.delete("/{project_id}", response_model=MessageResponse)
@with_audit(
    "project_delete",
    lambda kw, res: f"Deleted project #{kw['project_id']}",
    target=lambda kw, res: ("Project", kw["project_id"]),
)
def delete_project(
    request: Request,
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(*PROJECT_DELETERS)),
):
    name = project_service.delete_project(session, project_id)
    return MessageResponse(message=f"Project {name} deleted successfully")


@router.get("/{project_id}/available-members", response_model=MemberListResponse)
def available_members(
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(*PROJECT_EDITORS)),
):
    users = project_service.available_members(session, project_id)
    return MemberListResponse(data=[UserRef.model_validate(u) for u in users])


@router.post("/{project_id}/team-members", response_model=ProjectResponse)
@with_audit(
    "project_update",
    lambda kw, res: f"Added team member {kw['member'].user_id} to project: {res.data.name}",
    target=_project_target,
)
def add_team_member(
    request: Request,
    project_id: int,
    member: TeamMemberAdd,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(*PROJECT_EDITORS)),
):
    project = project_service.add_team_member(session, project_id, member.user_id, current_user)
    return ProjectResponse(data=project_service.to_project_read(session, project))


@router.delete("/{project_id}/team-members/{user_id}", response_model=ProjectResponse)
@with_audit(
    "project_update",
    lambda kw, res: f"Removed team member {kw['user_id']} from project: {res.data.name}",
    target=_project_target,
)
def remove_team_member(
    request: Request,
    project_id: int,
    user_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_roles(*PROJECT_EDITORS)),
):
    project = project_service.remove_team_member(session, project_id, user_id)
    return ProjectResponse(data=project_service.to_project_read(session, project))
