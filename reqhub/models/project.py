from typing import List, Optional
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from datetime import datetime


class Project(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: str
    status: str = "planning"    # planning | in_progress | review | completed | on_hold
    priority: str = "medium"    # low | medium | high | critical
    start_date: datetime = Field(default_factory=datetime.utcnow)
    deadline: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    client_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    # contact info kept until a user with this email registers
    client_name: Optional[str] = None
    client_email: Optional[str] = Field(default=None, index=True)
    created_by_id: int = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ProjectMember(SQLModel, table=True):
    project_id: int = Field(foreign_key="project.id", primary_key=True)
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    added_at: datetime = Field(default_factory=datetime.utcnow)
