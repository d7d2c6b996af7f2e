from typing import List, Optional
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from datetime import datetime


class Asset(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    project_id: int = Field(foreign_key="project.id", index=True)
    type: str = "other"   # image | document | video | audio | design | 3d_model | other
    file_url: str
    file_name: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    version: int = 1
    uploaded_by_id: int = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class AssetVersion(SQLModel, table=True):
    """A file an asset pointed at before it was replaced by a newer upload."""

    id: Optional[int] = Field(default=None, primary_key=True)
    asset_id: int = Field(foreign_key="asset.id", index=True)
    file_url: str
    version: int
    uploaded_at: datetime
