import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from reqhub.core.config import Settings
from reqhub.core.errors import AuthError, ValidationError
from reqhub.core.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    get_password_hash,
    hash_reset_token,
    verify_password,
)
from reqhub.models.password_reset import PasswordResetToken
from reqhub.models.project import Project
from reqhub.models.user import User
from reqhub.schemas.user import ProfileUpdate, UserCreate
from reqhub.services.activity_service import record_activity
from reqhub.services.email_service import send_email
from reqhub.services.persistence import save

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists with that email, a password reset link has been sent."
INVALID_CREDENTIALS = "Invalid credentials"


def issue_token(user: User, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        {"sub": str(user.id)},
        settings.secret_key,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def find_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email.strip().lower())).first()


def link_client_projects(session: Session, user: User) -> int:
    """Attaches unclaimed projects whose contact email matches the new user.

    Runs once at registration; later changes to a project's contact email
    do not move an already linked client.
    """
    projects = session.exec(
        select(Project).where(Project.client_email == user.email, Project.client_id == None)  # noqa: E711
    ).all()
    for project in projects:
        project.client_id = user.id
        project.updated_at = datetime.utcnow()
        session.add(project)
    if projects:
        session.commit()
        logger.info("Linked %d project(s) to new client %s", len(projects), user.id)
    return len(projects)


def register(session: Session, user_in: UserCreate, settings: Settings) -> Tuple[User, str]:
    email = user_in.email.lower()
    if find_user_by_email(session, email):
        raise ValidationError("User already exists")

    user = User(
        name=user_in.name.strip(),
        email=email,
        password_hash=get_password_hash(user_in.password),
        role=user_in.role or "client",
    )
    save(session, user)

    if user_in.role in (None, "client"):
        link_client_projects(session, user)

    return user, issue_token(user, settings)


def login(session: Session, email: str, password: str, settings: Settings) -> Tuple[User, str]:
    user = find_user_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthError(INVALID_CREDENTIALS)
    return user, issue_token(user, settings)


def verify_session(session: Session, token: str, settings: Settings) -> User:
    """Resolves a bearer token to the user, always reloading the user from storage."""
    payload = decode_access_token(token, settings.secret_key)
    if payload is None:
        raise AuthError("Could not validate credentials")
    user_id = payload.get("sub")
    if user_id is None:
        raise AuthError("Could not validate credentials")
    try:
        user = session.get(User, int(user_id))
    except ValueError:
        raise AuthError("Could not validate credentials")
    if user is None:
        raise AuthError("Could not validate credentials")
    return user


def create_reset_token(session: Session, user: User, settings: Settings) -> str:
    """Invalidates the user's outstanding reset tokens and stores the hash of a new one."""
    outstanding = session.exec(
        select(PasswordResetToken).where(
            PasswordResetToken.user_id == user.id, PasswordResetToken.used == False  # noqa: E712
        )
    ).all()
    for record in outstanding:
        record.used = True
        session.add(record)

    raw_token = generate_reset_token()
    session.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=hash_reset_token(raw_token),
            expires_at=datetime.utcnow() + timedelta(minutes=settings.reset_token_expire_minutes),
        )
    )
    session.commit()
    return raw_token


def find_valid_reset_token(session: Session, raw_token: str) -> Optional[PasswordResetToken]:
    return session.exec(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == hash_reset_token(raw_token),
            PasswordResetToken.used == False,  # noqa: E712
            PasswordResetToken.expires_at > datetime.utcnow(),
        )
    ).first()


def prepare_password_reset(session: Session, email: str, settings: Settings) -> Optional[Tuple[User, str]]:
    """Issues a reset token for a known email and returns the user with the reset link."""
    user = find_user_by_email(session, email)
    if not user:
        return None
    raw_token = create_reset_token(session, user, settings)
    session.refresh(user)
    return user, f"{settings.frontend_url.rstrip('/')}/reset-password/{raw_token}"


async def request_password_reset(session: Session, email: str, settings: Settings) -> Tuple[str, Optional[str]]:
    """Returns the generic message and, outside production, the reset link.

    The database work runs in the threadpool; only the email send is awaited
    on the event loop.
    """
    issued = await run_in_threadpool(prepare_password_reset, session, email, settings)
    if issued is None:
        return RESET_REQUESTED_MESSAGE, None
    user, reset_url = issued

    sent = await send_email(
        settings,
        user.email,
        "password_reset",
        name=user.name,
        reset_url=reset_url,
        expires_minutes=settings.reset_token_expire_minutes,
    )
    if not sent:
        logger.warning("Password reset email for user %s was not delivered", user.id)

    return RESET_REQUESTED_MESSAGE, None if settings.is_production else reset_url


def reset_password(session: Session, raw_token: str, new_password: str) -> User:
    record = find_valid_reset_token(session, raw_token)
    if record is None:
        raise ValidationError("Invalid or expired reset token")
    user = session.get(User, record.user_id)
    if user is None:
        raise ValidationError("Invalid or expired reset token")

    user.password_hash = get_password_hash(new_password)
    record.used = True
    session.add(record)
    save(session, user)

    record_activity(
        session.get_bind(),
        user.id,
        "user_password_reset",
        "Password was reset successfully",
        target_type="User",
        target_id=user.id,
    )
    return user


def change_password(session: Session, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.password_hash):
        raise AuthError("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    return save(session, user)


def update_profile(session: Session, user: User, profile: ProfileUpdate) -> User:
    if profile.name:
        user.name = profile.name.strip()
    if profile.avatar:
        user.avatar = profile.avatar
    return save(session, user)
