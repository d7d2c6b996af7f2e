from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from datetime import datetime

from reqhub.schemas.common import Pagination, UserRef


class ActivityRead(BaseModel):
    id: int
    user: Optional[UserRef]
    action: str
    description: str
    target_type: Optional[str]
    target_id: Optional[int]
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class ActivityListResponse(BaseModel):
    success: bool = True
    data: List[ActivityRead]
    pagination: Optional[Pagination] = None


class CountItem(BaseModel):
    key: str
    count: int


class TopUser(BaseModel):
    id: int
    name: str
    email: str
    count: int


class ActivityStats(BaseModel):
    action_counts: List[CountItem]
    daily_counts: List[CountItem]
    top_users: List[TopUser]


class ActivityStatsResponse(BaseModel):
    success: bool = True
    data: ActivityStats
