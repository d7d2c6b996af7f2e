from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from reqhub.schemas.common import ProjectRef, UserRef


class AssetVersionRead(BaseModel):
    file_url: str
    version: int
    uploaded_at: datetime

    class Config:
        from_attributes = True


class AssetRead(BaseModel):
    id: int
    name: str
    description: Optional[str]
    project: Optional[ProjectRef]
    type: str
    file_url: str
    file_name: str
    file_size: Optional[int]
    mime_type: Optional[str]
    tags: List[str]
    version: int
    previous_versions: List[AssetVersionRead] = []
    uploaded_by: Optional[UserRef]
    created_at: datetime
    updated_at: datetime


class AssetResponse(BaseModel):
    success: bool = True
    data: AssetRead


class AssetListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[AssetRead]
