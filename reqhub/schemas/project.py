from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from reqhub.schemas.common import Pagination, Priority, ProjectStatus, UserRef


class ClientInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: ProjectStatus = "planning"
    priority: Priority = "medium"
    start_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    tags: List[str] = []
    client: Optional[int] = None
    client_info: Optional[ClientInfo] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    start_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    tags: Optional[List[str]] = None
    client: Optional[int] = None
    client_info: Optional[ClientInfo] = None


class ProjectRead(BaseModel):
    id: int
    name: str
    description: str
    status: str
    priority: str
    start_date: datetime
    deadline: Optional[datetime]
    tags: List[str]
    client: Optional[UserRef] = None
    client_info: Optional[ClientInfo] = None
    team_members: List[UserRef] = []
    created_by: Optional[UserRef] = None
    created_at: datetime
    updated_at: datetime


class TeamMemberAdd(BaseModel):
    user_id: int


class ProjectResponse(BaseModel):
    success: bool = True
    data: ProjectRead


class ProjectListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[ProjectRead]
    pagination: Optional[Pagination] = None


class MemberListResponse(BaseModel):
    success: bool = True
    data: List[UserRef]
