from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.core.config import Settings, get_settings
from reqhub.database import get_session
from reqhub.models.asset import Asset
from reqhub.models.user import User
from reqhub.schemas.asset import AssetListResponse, AssetResponse
from reqhub.schemas.common import MessageResponse
from reqhub.services import asset_service
from reqhub.services.activity_service import with_audit
from reqhub.services.persistence import get_or_404

router = APIRouter()


@router.get("/", response_model=AssetListResponse)
def list_assets(
    project: Optional[int] = None,
    type: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    assets = asset_service.list_assets(session, project, type)
    data = [asset_service.to_asset_read(session, a) for a in assets]
    return AssetListResponse(count=len(data), data=data)


@router.get("/{asset_id}", response_model=AssetResponse)
def get_asset(
    asset_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    asset = get_or_404(session, Asset, asset_id, "Asset")
    return AssetResponse(data=asset_service.to_asset_read(session, asset))


@router.post("/", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
@with_audit(
    "asset_upload",
    lambda kw, res: f"Uploaded asset: {res.data.name}",
    target=lambda kw, res: ("Asset", res.data.id),
)
def upload_asset(
    request: Request,
    file: Optional[UploadFile] = File(None),
    project: Optional[int] = Form(None),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    asset = asset_service.upload_asset(
        session, file, project, current_user, settings, name=name, description=description, tags=tags
    )
    return AssetResponse(data=asset_service.to_asset_read(session, asset))


@router.put("/{asset_id}", response_model=AssetResponse)
@with_audit(
    "asset_upload",
    lambda kw, res: (
        f"Uploaded version {res.data.version} of asset: {res.data.name}"
        if kw.get("file") is not None and kw["file"].filename
        else f"Updated asset: {res.data.name}"
    ),
    target=lambda kw, res: ("Asset", res.data.id),
)
def update_asset(
    request: Request,
    asset_id: int,
    file: Optional[UploadFile] = File(None),
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    asset = asset_service.update_asset(
        session, asset_id, settings, upload=file, name=name, description=description, tags=tags
    )
    return AssetResponse(data=asset_service.to_asset_read(session, asset))


@router.delete("/{asset_id}", response_model=MessageResponse)
@with_audit(
    "asset_delete",
    lambda kw, res: f"Deleted asset #{kw['asset_id']}",
    target=lambda kw, res: ("Asset", kw["asset_id"]),
)
def delete_asset(
    request: Request,
    asset_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    name = asset_service.delete_asset(session, asset_id)
    return MessageResponse(message=f"Asset {name} deleted successfully")
