from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timedelta

RESET_TOKEN_LIFETIME = timedelta(hours=1)


def _default_expiry() -> datetime:
    return datetime.utcnow() + RESET_TOKEN_LIFETIME


class PasswordResetToken(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    token_hash: str = Field(index=True)  # sha256 of the emailed token
    expires_at: datetime = Field(default_factory=_default_expiry)
    used: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
