import math
from typing import Literal, Optional

from pydantic import BaseModel

Role = Literal["admin", "manager", "client", "team_member"]
ProjectStatus = Literal["planning", "in_progress", "review", "completed", "on_hold"]
Priority = Literal["low", "medium", "high", "critical"]
RequirementCategory = Literal["functional", "non_functional", "technical", "business", "ui_ux"]
RequirementStatus = Literal["draft", "pending", "approved", "in_progress", "completed", "rejected"]
AssetType = Literal["image", "document", "video", "audio", "design", "3d_model", "other"]
NotificationType = Literal[
    "requirement_assigned",
    "requirement_updated",
    "requirement_commented",
    "requirement_status_changed",
    "project_assigned",
    "project_deadline",
    "asset_uploaded",
    "mention",
    "system",
]
ActivityAction = Literal[
    "user_register",
    "user_login",
    "user_logout",
    "user_password_reset",
    "project_create",
    "project_update",
    "project_delete",
    "requirement_create",
    "requirement_update",
    "requirement_delete",
    "requirement_status_change",
    "requirement_comment",
    "asset_upload",
    "asset_delete",
    "asset_download",
]
TargetType = Literal["User", "Project", "Requirement", "Asset"]


class UserRef(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class ProjectRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class MessageResponse(BaseModel):
    success: bool = True
    message: str
