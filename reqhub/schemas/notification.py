from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from reqhub.schemas.common import Pagination, UserRef


class NotificationRead(BaseModel):
    id: int
    sender: Optional[UserRef] = None
    type: str
    title: str
    message: str
    link: Optional[str]
    target_type: Optional[str]
    target_id: Optional[int]
    read: bool
    created_at: datetime


class NotificationResponse(BaseModel):
    success: bool = True
    data: NotificationRead


class NotificationListResponse(BaseModel):
    success: bool = True
    data: List[NotificationRead]
    unread_count: int
    pagination: Pagination
