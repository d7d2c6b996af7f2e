import json
import logging
from typing import Dict, List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import func
from sqlmodel import Session, select, delete

from reqhub.core.config import Settings
from reqhub.core.errors import NotFoundError, ValidationError
from reqhub.models.asset import Asset
from reqhub.models.notification import Notification
from reqhub.models.project import Project
from reqhub.models.requirement import Requirement, RequirementAttachment, RequirementComment
from reqhub.models.user import User
from reqhub.schemas.common import ProjectRef, UserRef
from reqhub.schemas.requirement import (
    AttachmentRead,
    ClientRequirementUpdate,
    CommentRead,
    RequirementCreate,
    RequirementRead,
    RequirementUpdate,
)
from reqhub.services import storage
from reqhub.services.activity_service import record_activity
from reqhub.services.notification_service import notify
from reqhub.services.persistence import get_or_404, load_users, save, touch_updated_at

logger = logging.getLogger(__name__)

CATEGORIES = ("functional", "non_functional", "technical", "business", "ui_ux")
PRIORITIES = ("low", "medium", "high", "critical")
STATUSES = ("draft", "pending", "approved", "in_progress", "completed", "rejected")
CLIENT_EDITABLE_STATUSES = ("draft", "pending")

CLIENT_UPLOAD_TAGS = ["client-upload", "requirement-attachment"]
MAX_SUBMISSION_DOCUMENTS = 5
MAX_EXTRA_DOCUMENTS = 10


def _user_ref(users: Dict[int, User], user_id: Optional[int]) -> Optional[UserRef]:
    user = users.get(user_id) if user_id is not None else None
    return UserRef.model_validate(user) if user else None


def attachments_of(session: Session, requirement_id: int) -> List[RequirementAttachment]:
    return session.exec(
        select(RequirementAttachment)
        .where(RequirementAttachment.requirement_id == requirement_id)
        .order_by(RequirementAttachment.id)
    ).all()


def comments_of(session: Session, requirement_id: int) -> List[RequirementComment]:
    return session.exec(
        select(RequirementComment)
        .where(RequirementComment.requirement_id == requirement_id)
        .order_by(RequirementComment.id)
    ).all()


def to_comment_read(comment: RequirementComment, users: Dict[int, User]) -> CommentRead:
    return CommentRead(
        id=comment.id,
        user=_user_ref(users, comment.user_id),
        text=comment.text,
        created_at=comment.created_at,
    )


def to_requirement_read(session: Session, requirement: Requirement, detail: bool = False) -> RequirementRead:
    """Serializes a requirement with project and people names resolved.

    ``detail`` also loads the comment thread.
    """
    comments = comments_of(session, requirement.id) if detail else []
    users = load_users(
        session,
        [requirement.created_by_id, requirement.assigned_to_id, *(c.user_id for c in comments)],
    )
    project = session.get(Project, requirement.project_id)
    return RequirementRead(
        id=requirement.id,
        title=requirement.title,
        description=requirement.description,
        project=ProjectRef.model_validate(project) if project else None,
        category=requirement.category,
        priority=requirement.priority,
        status=requirement.status,
        acceptance_criteria=requirement.acceptance_criteria or [],
        attachments=[AttachmentRead.model_validate(a) for a in attachments_of(session, requirement.id)],
        comments=[to_comment_read(c, users) for c in comments],
        created_by=_user_ref(users, requirement.created_by_id),
        assigned_to=_user_ref(users, requirement.assigned_to_id),
        created_at=requirement.created_at,
        updated_at=requirement.updated_at,
    )


def _filtered(
    project: Optional[int] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    created_by: Optional[int] = None,
):
    query = select(Requirement)
    if project is not None:
        query = query.where(Requirement.project_id == project)
    if status:
        query = query.where(Requirement.status == status)
    if category:
        query = query.where(Requirement.category == category)
    if priority:
        query = query.where(Requirement.priority == priority)
    if created_by is not None:
        query = query.where(Requirement.created_by_id == created_by)
    return query


def list_requirements(
    session: Session,
    project: Optional[int] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[str] = None,
    oldest_first: bool = False,
) -> List[Requirement]:
    query = _filtered(project, status, category, priority)
    if oldest_first:
        query = query.order_by(Requirement.created_at, Requirement.id)
    else:
        query = query.order_by(Requirement.created_at.desc(), Requirement.id.desc())
    return session.exec(query).all()


def list_client_requirements(
    session: Session,
    client: User,
    status: Optional[str] = None,
    project: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Requirement], int]:
    query = _filtered(project=project, status=status, created_by=client.id)
    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    requirements = session.exec(
        query.order_by(Requirement.created_at.desc(), Requirement.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return requirements, total


def get_requirement(session: Session, requirement_id: int) -> Requirement:
    return get_or_404(session, Requirement, requirement_id, "Requirement")


def _require_project(session: Session, project_id: Optional[int]) -> Project:
    if project_id is None:
        raise ValidationError("Project is required")
    project = session.get(Project, project_id)
    if project is None:
        raise ValidationError("Project not found")
    return project


def _require_assignee(session: Session, user_id: Optional[int]) -> None:
    if user_id is not None and session.get(User, user_id) is None:
        raise ValidationError("Assigned user not found")


def _require_text(value: Optional[str], label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    return text


def create_requirement(session: Session, requirement_in: RequirementCreate, creator: User) -> Requirement:
    title = _require_text(requirement_in.title, "Title")
    _require_text(requirement_in.description, "Description")
    _require_project(session, requirement_in.project)
    _require_assignee(session, requirement_in.assigned_to)
    requirement = Requirement(
        title=title,
        description=requirement_in.description,
        project_id=requirement_in.project,
        category=requirement_in.category,
        priority=requirement_in.priority,
        status=requirement_in.status,
        acceptance_criteria=list(requirement_in.acceptance_criteria),
        created_by_id=creator.id,
        assigned_to_id=requirement_in.assigned_to,
    )
    save(session, requirement)
    if requirement.assigned_to_id:
        _notify_assigned(session, requirement, creator)
    return requirement


def parse_acceptance_criteria(raw: Optional[str]) -> Optional[List[str]]:
    """Multipart forms carry the criteria as a JSON array string."""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("acceptance_criteria must be a JSON array of strings")
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError("acceptance_criteria must be a JSON array of strings")
    return value


def attach_documents(
    session: Session,
    requirement: Requirement,
    files: List[UploadFile],
    uploader: User,
    settings: Settings,
    description: str,
) -> List[Asset]:
    """Stores each file as a project asset and appends a matching attachment.

    Writes happen one after another; a failure part-way leaves the earlier
    files attached.
    """
    assets = []
    for upload in files:
        stored = storage.store_upload(upload, settings, subdir=storage.CLIENT_DOCUMENTS_DIR, prefix="client-")
        asset = Asset(
            name=stored.original_name,
            description=description,
            project_id=requirement.project_id,
            type=storage.document_type_for_filename(stored.original_name),
            file_url=stored.url,
            file_name=stored.stored_name,
            file_size=stored.size,
            mime_type=stored.mime_type,
            tags=list(CLIENT_UPLOAD_TAGS),
            uploaded_by_id=uploader.id,
        )
        save(session, asset)
        session.add(
            RequirementAttachment(requirement_id=requirement.id, filename=stored.original_name, url=asset.file_url)
        )
        assets.append(asset)
    if assets:
        save(session, requirement)
    return assets


def client_submit(
    session: Session,
    title: Optional[str],
    description: Optional[str],
    project_id: Optional[int],
    category: Optional[str],
    priority: Optional[str],
    acceptance_criteria: Optional[str],
    files: List[UploadFile],
    client: User,
    settings: Settings,
) -> Tuple[Requirement, List[Asset]]:
    if not (title or "").strip() or not (description or "").strip() or project_id is None:
        raise ValidationError("Title, description, and project are required")
    _require_project(session, project_id)
    if category and category not in CATEGORIES:
        raise ValidationError(f"Invalid category: {category}")
    if priority and priority not in PRIORITIES:
        raise ValidationError(f"Invalid priority: {priority}")
    criteria = parse_acceptance_criteria(acceptance_criteria) or []
    if len(files) > MAX_SUBMISSION_DOCUMENTS:
        raise ValidationError(f"At most {MAX_SUBMISSION_DOCUMENTS} documents can be attached")
    storage.validate_uploads(files, storage.CLIENT_DOCUMENT_EXTENSIONS, settings.max_upload_size)

    requirement = Requirement(
        title=title.strip(),
        description=description,
        project_id=project_id,
        category=category or "functional",
        priority=priority or "medium",
        status="pending",
        acceptance_criteria=criteria,
        created_by_id=client.id,
    )
    save(session, requirement)
    assets = attach_documents(
        session, requirement, files, client, settings, f"Uploaded with requirement: {requirement.title}"
    )
    logger.info("Client %s submitted requirement %s with %d document(s)", client.id, requirement.id, len(assets))
    return requirement, assets


def client_add_documents(
    session: Session,
    requirement_id: int,
    files: List[UploadFile],
    client: User,
    settings: Settings,
    description: Optional[str] = None,
) -> Tuple[Requirement, List[Asset]]:
    requirement = get_or_404(session, Requirement, requirement_id, "Requirement")
    if not files:
        raise ValidationError("No files uploaded")
    if len(files) > MAX_EXTRA_DOCUMENTS:
        raise ValidationError(f"At most {MAX_EXTRA_DOCUMENTS} documents can be uploaded at once")
    storage.validate_uploads(files, storage.CLIENT_DOCUMENT_EXTENSIONS, settings.max_upload_size)
    assets = attach_documents(
        session, requirement, files, client, settings, description or f"Document for: {requirement.title}"
    )
    return requirement, assets


def _notify_assigned(session: Session, requirement: Requirement, actor: User) -> None:
    notify(
        session,
        requirement.assigned_to_id,
        "requirement_assigned",
        "New requirement assigned",
        f"You have been assigned: {requirement.title}",
        sender_id=actor.id,
        link=f"/requirements/{requirement.id}",
        target_type="Requirement",
        target_id=requirement.id,
    )


def update_requirement(session: Session, requirement_id: int, requirement_in: RequirementUpdate, actor: User) -> Requirement:
    """Applies only the fields present in the patch.

    A status change notifies the creator and is logged as its own activity;
    a new assignee gets a notification.
    """
    requirement = get_or_404(session, Requirement, requirement_id, "Requirement")
    data = requirement_in.model_dump(exclude_unset=True)
    old_status = requirement.status
    old_assignee = requirement.assigned_to_id

    if data.get("title") is not None:
        data["title"] = _require_text(data["title"], "Title")
    if data.get("description") is not None:
        _require_text(data["description"], "Description")
    if "assigned_to" in data:
        _require_assignee(session, data["assigned_to"])
        requirement.assigned_to_id = data.pop("assigned_to")
    for key, value in data.items():
        if value is not None:
            setattr(requirement, key, value)
    save(session, requirement)

    if requirement.status != old_status:
        notify(
            session,
            requirement.created_by_id,
            "requirement_status_changed",
            "Requirement status updated",
            f'"{requirement.title}" changed from {old_status} to {requirement.status}',
            sender_id=actor.id,
            link=f"/requirements/{requirement.id}",
            target_type="Requirement",
            target_id=requirement.id,
        )
        record_activity(
            session.get_bind(),
            actor.id,
            "requirement_status_change",
            f"Changed status of {requirement.title} from {old_status} to {requirement.status}",
            target_type="Requirement",
            target_id=requirement.id,
            metadata={"from": old_status, "to": requirement.status},
        )
    if requirement.assigned_to_id and requirement.assigned_to_id != old_assignee:
        _notify_assigned(session, requirement, actor)
    return requirement


def client_update(
    session: Session,
    requirement_id: int,
    requirement_in: ClientRequirementUpdate,
    files: List[UploadFile],
    client: User,
    settings: Settings,
) -> Requirement:
    requirement = session.get(Requirement, requirement_id)
    if not requirement or requirement.created_by_id != client.id:
        raise NotFoundError("Requirement not found or unauthorized")
    if requirement.status not in CLIENT_EDITABLE_STATUSES:
        raise ValidationError("Cannot update requirement after it has been reviewed")
    if len(files) > MAX_SUBMISSION_DOCUMENTS:
        raise ValidationError(f"At most {MAX_SUBMISSION_DOCUMENTS} documents can be attached")
    storage.validate_uploads(files, storage.CLIENT_DOCUMENT_EXTENSIONS, settings.max_upload_size)

    data = requirement_in.model_dump(exclude_unset=True)
    if data.get("title"):
        data["title"] = _require_text(data["title"], "Title")
    if data.get("description"):
        _require_text(data["description"], "Description")
    for key, value in data.items():
        if value:
            setattr(requirement, key, value)
    save(session, requirement)
    attach_documents(session, requirement, files, client, settings, f"Updated document for: {requirement.title}")
    return requirement


def add_comment(session: Session, requirement_id: int, text: Optional[str], author: User) -> CommentRead:
    """Appends one comment row; concurrent comments on the same requirement all survive."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Comment text is required")
    requirement = get_or_404(session, Requirement, requirement_id, "Requirement")

    comment = RequirementComment(requirement_id=requirement.id, user_id=author.id, text=text)
    session.add(comment)
    session.add(touch_updated_at(requirement))
    session.commit()
    session.refresh(comment)

    notify(
        session,
        requirement.created_by_id,
        "requirement_commented",
        "New comment",
        f"{author.name} commented on {requirement.title}",
        sender_id=author.id,
        link=f"/requirements/{requirement.id}",
        target_type="Requirement",
        target_id=requirement.id,
    )
    return to_comment_read(comment, load_users(session, [author.id]))


def purge_requirement(session: Session, requirement: Requirement) -> None:
    """Removes a requirement with its comments, attachment rows and the
    notifications pointing at it. Assets referenced by the attachments stay in
    the project's asset library. Does not commit."""
    session.exec(delete(RequirementComment).where(RequirementComment.requirement_id == requirement.id))
    session.exec(delete(RequirementAttachment).where(RequirementAttachment.requirement_id == requirement.id))
    session.exec(
        delete(Notification).where(
            Notification.target_type == "Requirement", Notification.target_id == requirement.id
        )
    )
    session.delete(requirement)


def delete_requirement(session: Session, requirement_id: int) -> str:
    """Deletes the requirement and returns its title."""
    requirement = get_or_404(session, Requirement, requirement_id, "Requirement")
    title = requirement.title
    purge_requirement(session, requirement)
    session.commit()
    return title
