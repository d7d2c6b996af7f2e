from datetime import datetime
from typing import Dict, Iterable, Optional, Type, TypeVar

from sqlmodel import Session, SQLModel, select

from reqhub.core.errors import NotFoundError
from reqhub.models.user import User

ModelT = TypeVar("ModelT", bound=SQLModel)


def touch_updated_at(record: SQLModel) -> SQLModel:
    if hasattr(record, "updated_at"):
        record.updated_at = datetime.utcnow()
    return record


def save(session: Session, record: ModelT) -> ModelT:
    touch_updated_at(record)
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def get_or_404(session: Session, model: Type[ModelT], record_id: int, label: str) -> ModelT:
    record = session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def load_users(session: Session, user_ids: Iterable[Optional[int]]) -> Dict[int, User]:
    """Fetches the given users in one query, keyed by id."""
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    users = session.exec(select(User).where(User.id.in_(ids))).all()
    return {u.id: u for u in users}
