from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.common import MessageResponse
from reqhub.schemas.requirement import (
    CommentCreate,
    CommentResponse,
    RequirementCreate,
    RequirementListResponse,
    RequirementResponse,
    RequirementUpdate,
)
from reqhub.services import requirement_service
from reqhub.services.activity_service import with_audit

router = APIRouter()


def _requirement_target(kwargs, result):
    return "Requirement", result.data.id


@router.get("/", response_model=RequirementListResponse)
def list_requirements(
    project: Optional[int] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    requirements = requirement_service.list_requirements(session, project, status, category, priority)
    data = [requirement_service.to_requirement_read(session, r) for r in requirements]
    return RequirementListResponse(count=len(data), data=data)


@router.get("/{requirement_id}", response_model=RequirementResponse)
def get_requirement(
    requirement_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    requirement = requirement_service.get_requirement(session, requirement_id)
    return RequirementResponse(data=requirement_service.to_requirement_read(session, requirement, detail=True))


@router.post("/", response_model=RequirementResponse, status_code=status.HTTP_201_CREATED)
@with_audit("requirement_create", lambda kw, res: f"Created requirement: {res.data.title}", target=_requirement_target)
def create_requirement(
    request: Request,
    requirement_in: RequirementCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    requirement = requirement_service.create_requirement(session, requirement_in, current_user)
    return RequirementResponse(data=requirement_service.to_requirement_read(session, requirement))


@router.put("/{requirement_id}", response_model=RequirementResponse)
@with_audit("requirement_update", lambda kw, res: f"Updated requirement: {res.data.title}", target=_requirement_target)
def update_requirement(
    request: Request,
    requirement_id: int,
    requirement_in: RequirementUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    requirement = requirement_service.update_requirement(session, requirement_id, requirement_in, current_user)
    return RequirementResponse(data=requirement_service.to_requirement_read(session, requirement))


@router.post("/{requirement_id}/comments", response_model=CommentResponse)
@with_audit(
    "requirement_comment",
    lambda kw, res: f"Commented on requirement #{kw['requirement_id']}",
    target=lambda kw, res: ("Requirement", kw["requirement_id"]),
)
def add_comment(
    request: Request,
    requirement_id: int,
    comment_in: CommentCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    comment = requirement_service.add_comment(session, requirement_id, comment_in.text, current_user)
    return CommentResponse(data=comment)


@router.delete("/{requirement_id}", response_model=MessageResponse)
@with_audit(
    "requirement_delete",
    lambda kw, res: f"Deleted requirement #{kw['requirement_id']}",
    target=lambda kw, res: ("Requirement", kw["requirement_id"]),
)
def delete_requirement(
    request: Request,
    requirement_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    title = requirement_service.delete_requirement(session, requirement_id)
    return MessageResponse(message=f"Requirement {title} deleted successfully")
