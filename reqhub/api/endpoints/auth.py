from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from reqhub.core.config import Settings, get_settings
from reqhub.core.errors import AuthorizationError
from reqhub.core.permissions import authorize
from reqhub.core.rate_limit import AUTH_RATE_LIMIT, limiter
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.common import MessageResponse
from reqhub.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MeResponse,
    ProfileUpdate,
    ResetPasswordRequest,
    UserCreate,
    UserPublic,
    UserRead,
)
from reqhub.services import auth_service
from reqhub.services.activity_service import with_audit

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> User:
    return auth_service.verify_session(session, token, settings)


def require_roles(*roles: str):
    """Dependency factory: the verified user must hold one of ``roles``."""

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if not authorize(current_user, roles):
            raise AuthorizationError(f"User role {current_user.role} is not authorized to access this route")
        return current_user

    return checker


def _result_user(kwargs, result):
    return result.user.id


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
@with_audit(
    "user_register",
    lambda kw, res: f"New user registered: {res.user.email}",
    target=lambda kw, res: ("User", res.user.id),
    actor=_result_user,
)
def register(
    request: Request,
    user_in: UserCreate,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    user, token = auth_service.register(session, user_in, settings)
    return AuthResponse(token=token, user=UserPublic.model_validate(user))


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_RATE_LIMIT)
@with_audit(
    "user_login",
    lambda kw, res: f"User logged in: {res.user.email}",
    target=lambda kw, res: ("User", res.user.id),
    actor=_result_user,
)
def login(
    request: Request,
    credentials: LoginRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    user, token = auth_service.login(session, credentials.email, credentials.password, settings)
    return AuthResponse(token=token, user=UserPublic.model_validate(user))


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
    return MeResponse(user=UserRead.model_validate(current_user))


@router.put("/profile", response_model=MeResponse)
def update_profile(
    profile: ProfileUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    user = auth_service.update_profile(session, current_user, profile)
    return MeResponse(user=UserRead.model_validate(user))


@router.post("/forgot-password", response_model=ForgotPasswordResponse, response_model_exclude_none=True)
@limiter.limit(AUTH_RATE_LIMIT)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    message, reset_url = await auth_service.request_password_reset(session, payload.email, settings)
    return ForgotPasswordResponse(message=message, reset_url=reset_url)


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    session: Session = Depends(get_session),
):
    auth_service.reset_password(session, token, payload.password)
    return MessageResponse(message="Password has been reset successfully")


@router.put("/change-password", response_model=MessageResponse)
@with_audit("user_password_reset", "Password was changed", target=lambda kw, res: ("User", kw["current_user"].id))
def change_password(
    request: Request,
    payload: ChangePasswordRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    auth_service.change_password(session, current_user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")
