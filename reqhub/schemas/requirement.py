# schemas/requirement.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from reqhub.schemas.asset import AssetRead
from reqhub.schemas.common import (
    Pagination,
    Priority,
    ProjectRef,
    RequirementCategory,
    RequirementStatus,
    UserRef,
)


class RequirementCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    project: int
    category: RequirementCategory = "functional"
    priority: Priority = "medium"
    status: RequirementStatus = "draft"
    acceptance_criteria: List[str] = []
    assigned_to: Optional[int] = None


class RequirementUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[RequirementCategory] = None
    priority: Optional[Priority] = None
    status: Optional[RequirementStatus] = None
    acceptance_criteria: Optional[List[str]] = None
    assigned_to: Optional[int] = None


class ClientRequirementUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[RequirementCategory] = None
    priority: Optional[Priority] = None
    acceptance_criteria: Optional[List[str]] = None


class CommentCreate(BaseModel):
    text: str


class AttachmentRead(BaseModel):
    id: int
    filename: str
    url: str
    uploaded_at: datetime

    class Config:
        from_attributes = True


class CommentRead(BaseModel):
    id: int
    user: Optional[UserRef]
    text: str
    created_at: datetime


class RequirementRead(BaseModel):
    id: int
    title: str
    description: str
    project: Optional[ProjectRef]
    category: str
    priority: str
    status: str
    acceptance_criteria: List[str]
    attachments: List[AttachmentRead] = []
    comments: List[CommentRead] = []
    created_by: Optional[UserRef]
    assigned_to: Optional[UserRef] = None
    created_at: datetime
    updated_at: datetime


class RequirementResponse(BaseModel):
    success: bool = True
    data: RequirementRead


class RequirementListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[RequirementRead]
    pagination: Optional[Pagination] = None


class CommentResponse(BaseModel):
    success: bool = True
    message: str = "Comment added successfully"
    data: CommentRead


class SubmissionData(BaseModel):
    requirement: RequirementRead
    attachments: List[AssetRead]


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str
    data: SubmissionData
