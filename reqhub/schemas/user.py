# schemas/user.py

from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

from reqhub.schemas.common import Role


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Optional[Role] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserPublic(BaseModel):
    id: int
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class UserRead(UserPublic):
    avatar: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserPublic


class MeResponse(BaseModel):
    success: bool = True
    user: UserRead


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    success: bool = True
    message: str
    reset_url: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=6)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
