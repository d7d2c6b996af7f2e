import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlmodel import Session, select, delete

from reqhub.core.config import Settings
from reqhub.core.errors import ValidationError
from reqhub.models.asset import Asset, AssetVersion
from reqhub.models.project import Project
from reqhub.schemas.asset import AssetRead, AssetVersionRead
from reqhub.schemas.common import ProjectRef, UserRef
from reqhub.services import storage
from reqhub.services.persistence import get_or_404, load_users, save

logger = logging.getLogger(__name__)


def parse_tags(raw: Optional[str]) -> List[str]:
    return [tag.strip() for tag in (raw or "").split(",") if tag.strip()]


def versions_of(session: Session, asset_id: int) -> List[AssetVersion]:
    return session.exec(
        select(AssetVersion).where(AssetVersion.asset_id == asset_id).order_by(AssetVersion.version)
    ).all()


def to_asset_read(session: Session, asset: Asset) -> AssetRead:
    project = session.get(Project, asset.project_id)
    uploader = load_users(session, [asset.uploaded_by_id]).get(asset.uploaded_by_id)
    return AssetRead(
        id=asset.id,
        name=asset.name,
        description=asset.description,
        project=ProjectRef.model_validate(project) if project else None,
        type=asset.type,
        file_url=asset.file_url,
        file_name=asset.file_name,
        file_size=asset.file_size,
        mime_type=asset.mime_type,
        tags=asset.tags or [],
        version=asset.version,
        previous_versions=[AssetVersionRead.model_validate(v) for v in versions_of(session, asset.id)],
        uploaded_by=UserRef.model_validate(uploader) if uploader else None,
        created_at=asset.created_at,
        updated_at=asset.updated_at,
    )


def list_assets(session: Session, project: Optional[int] = None, type: Optional[str] = None) -> List[Asset]:
    query = select(Asset)
    if project is not None:
        query = query.where(Asset.project_id == project)
    if type:
        query = query.where(Asset.type == type)
    return session.exec(query.order_by(Asset.created_at.desc(), Asset.id.desc())).all()


def upload_asset(
    session: Session,
    upload: Optional[UploadFile],
    project_id: Optional[int],
    uploader,
    settings: Settings,
    name: Optional[str] = None,
    description: Optional[str] = None,
    tags: Optional[str] = None,
) -> Asset:
    if upload is None or not upload.filename:
        raise ValidationError("Please upload a file")
    if project_id is None or session.get(Project, project_id) is None:
        raise ValidationError("A valid project is required")
    storage.validate_uploads([upload], storage.ASSET_EXTENSIONS, settings.max_upload_size)

    stored = storage.store_upload(upload, settings)
    asset = Asset(
        name=(name or "").strip() or stored.original_name,
        description=description,
        project_id=project_id,
        type=storage.asset_type_for_mime(stored.mime_type),
        file_url=stored.url,
        file_name=stored.original_name,
        file_size=stored.size,
        mime_type=stored.mime_type,
        tags=parse_tags(tags),
        uploaded_by_id=uploader.id,
    )
    return save(session, asset)


def update_asset(
    session: Session,
    asset_id: int,
    settings: Settings,
    upload: Optional[UploadFile] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    tags: Optional[str] = None,
) -> Asset:
    """Updates metadata and, when a file is given, publishes it as the next version.

    The replaced file is kept in the version history with the time it was
    last updated.
    """
    asset = get_or_404(session, Asset, asset_id, "Asset")
    has_file = upload is not None and bool(upload.filename)
    if has_file:
        storage.validate_uploads([upload], storage.ASSET_EXTENSIONS, settings.max_upload_size)
        stored = storage.store_upload(upload, settings)
        session.add(
            AssetVersion(
                asset_id=asset.id,
                file_url=asset.file_url,
                version=asset.version,
                uploaded_at=asset.updated_at,
            )
        )
        asset.version += 1
        asset.file_url = stored.url
        asset.file_name = stored.original_name
        asset.file_size = stored.size
        asset.mime_type = stored.mime_type
        logger.info("Asset %s moved to version %s", asset.id, asset.version)

    if name:
        asset.name = name.strip()
    if description:
        asset.description = description
    if tags:
        asset.tags = parse_tags(tags)
    return save(session, asset)


def purge_asset(session: Session, asset: Asset) -> None:
    """Deletes an asset row with its version history. Does not commit."""
    session.exec(delete(AssetVersion).where(AssetVersion.asset_id == asset.id))
    session.delete(asset)


def delete_asset(session: Session, asset_id: int) -> str:
    """Deletes the asset and returns its name."""
    asset = get_or_404(session, Asset, asset_id, "Asset")
    name = asset.name
    purge_asset(session, asset)
    session.commit()
    return name
