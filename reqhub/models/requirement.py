from typing import List, Optional
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from datetime import datetime


class Requirement(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: str
    project_id: int = Field(foreign_key="project.id", index=True)
    category: str = "functional"   # functional | non_functional | technical | business | ui_ux
    priority: str = "medium"       # low | medium | high | critical
    status: str = "draft"          # draft | pending | approved | in_progress | completed | rejected
    acceptance_criteria: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_by_id: int = Field(foreign_key="user.id", index=True)
    assigned_to_id: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class RequirementAttachment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    requirement_id: int = Field(foreign_key="requirement.id", index=True)
    filename: str
    url: str
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)


class RequirementComment(SQLModel, table=True):
    """One row per comment so concurrent appends never overwrite each other."""

    id: Optional[int] = Field(default=None, primary_key=True)
    requirement_id: int = Field(foreign_key="requirement.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    text: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
