from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from datetime import datetime


class ActivityLog(SQLModel, table=True):
    """Append-only audit trail. Rows are never updated or deleted."""

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    action: str = Field(index=True)
    description: str
    target_type: Optional[str] = None  # User | Project | Requirement | Asset
    target_id: Optional[int] = None
    # request method, path and body; "metadata" is reserved by SQLModel
    meta: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
