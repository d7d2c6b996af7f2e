from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.core.config import Settings, get_settings
from reqhub.core.errors import ValidationError
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.common import Pagination
from reqhub.schemas.requirement import (
    ClientRequirementUpdate,
    CommentCreate,
    CommentResponse,
    RequirementListResponse,
    RequirementResponse,
    SubmissionData,
    SubmissionResponse,
)
from reqhub.services import asset_service, requirement_service
from reqhub.services.activity_service import with_audit

router = APIRouter()


def _client_patch(**fields) -> ClientRequirementUpdate:
    """Builds the patch from the multipart fields that were actually sent."""
    try:
        return ClientRequirementUpdate(**{k: v for k, v in fields.items() if v is not None})
    except PydanticValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(part) for part in err.get("loc", ()))
        raise ValidationError(f"{field}: {err.get('msg', 'Invalid value')}")


def _submission(session: Session, requirement, assets, message: str) -> SubmissionResponse:
    return SubmissionResponse(
        message=message,
        data=SubmissionData(
            requirement=requirement_service.to_requirement_read(session, requirement),
            attachments=[asset_service.to_asset_read(session, a) for a in assets],
        ),
    )


@router.post("/requirements", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
@with_audit(
    "requirement_create",
    lambda kw, res: f"Client submitted requirement: {res.data.requirement.title}",
    target=lambda kw, res: ("Requirement", res.data.requirement.id),
)
def submit_requirement(
    request: Request,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    project: Optional[int] = Form(None),
    category: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    acceptance_criteria: Optional[str] = Form(None),
    documents: Optional[List[UploadFile]] = File(None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    requirement, assets = requirement_service.client_submit(
        session,
        title,
        description,
        project,
        category,
        priority,
        acceptance_criteria,
        documents or [],
        current_user,
        settings,
    )
    return _submission(session, requirement, assets, "Requirement submitted successfully")


@router.post("/documents/{requirement_id}", response_model=SubmissionResponse)
@with_audit(
    "asset_upload",
    lambda kw, res: f"Uploaded {len(res.data.attachments)} document(s) to requirement: {res.data.requirement.title}",
    target=lambda kw, res: ("Requirement", res.data.requirement.id),
)
def upload_documents(
    request: Request,
    requirement_id: int,
    description: Optional[str] = Form(None),
    documents: Optional[List[UploadFile]] = File(None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    requirement, assets = requirement_service.client_add_documents(
        session, requirement_id, documents or [], current_user, settings, description
    )
    return _submission(session, requirement, assets, f"{len(assets)} document(s) uploaded successfully")


@router.get("/my-requirements", response_model=RequirementListResponse)
def my_requirements(
    status: Optional[str] = None,
    project: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    page, limit = max(page, 1), max(limit, 1)
    requirements, total = requirement_service.list_client_requirements(
        session, current_user, status=status, project=project, page=page, limit=limit
    )
    data = [requirement_service.to_requirement_read(session, r) for r in requirements]
    return RequirementListResponse(count=len(data), data=data, pagination=Pagination.build(page, limit, total))


@router.put("/requirements/{requirement_id}", response_model=RequirementResponse)
@with_audit(
    "requirement_update",
    lambda kw, res: f"Client updated requirement: {res.data.title}",
    target=lambda kw, res: ("Requirement", res.data.id),
)
def update_requirement(
    request: Request,
    requirement_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    acceptance_criteria: Optional[str] = Form(None),
    documents: Optional[List[UploadFile]] = File(None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    patch = _client_patch(
        title=title,
        description=description,
        category=category,
        priority=priority,
        acceptance_criteria=requirement_service.parse_acceptance_criteria(acceptance_criteria),
    )
    requirement = requirement_service.client_update(
        session, requirement_id, patch, documents or [], current_user, settings
    )
    return RequirementResponse(data=requirement_service.to_requirement_read(session, requirement))


@router.post("/requirements/{requirement_id}/comment", response_model=CommentResponse)
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
