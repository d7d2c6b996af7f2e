from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recipient_id: int = Field(foreign_key="user.id", index=True)
    sender_id: Optional[int] = Field(default=None, foreign_key="user.id")
    type: str
    title: str
    message: str
    link: Optional[str] = None
    target_type: Optional[str] = None  # Project | Requirement | Asset
    target_id: Optional[int] = None
    read: bool = Field(default=False, index=True)
    email_sent: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
