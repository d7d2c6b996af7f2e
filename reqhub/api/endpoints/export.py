from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.services import export_service

router = APIRouter()


def _attachment(content, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/project/{project_id}")
def export_project(
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    pdf, filename = export_service.project_pdf(session, project_id)
    return _attachment(pdf, "application/pdf", filename)


@router.get("/project/{project_id}/csv")
def export_project_csv(
    project_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    content, filename = export_service.project_csv(session, project_id)
    return _attachment(content, "text/csv", filename)


@router.get("/requirements")
def export_requirements(
    project: Optional[int] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    pdf = export_service.requirements_pdf(session, project, status, priority, category)
    return _attachment(pdf, "application/pdf", "requirements_report.pdf")


@router.get("/requirement/{requirement_id}")
def export_requirement(
    requirement_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    pdf, filename = export_service.requirement_pdf(session, requirement_id)
    return _attachment(pdf, "application/pdf", filename)
