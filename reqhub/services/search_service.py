import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import String, cast
from sqlalchemy.engine import Engine
from sqlmodel import Session, select, or_

from reqhub.core.errors import ValidationError
from reqhub.models.asset import Asset
from reqhub.models.project import Project
from reqhub.models.requirement import Requirement
from reqhub.models.user import User
from reqhub.schemas.search import SearchCounts, SearchResponse, Suggestion
from reqhub.services.persistence import load_users

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
DEFAULT_LIMIT = 20
MAX_LIMIT = 50
SUGGESTION_LIMIT = 5

SEARCH_TYPES = ("projects", "requirements", "assets", "users")
# singular names, as used in the _type tag of each hit
TYPE_ALIASES = {"project": "projects", "requirement": "requirements", "asset": "assets", "user": "users"}


def _pattern(text: str, prefix: bool = False) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%" if prefix else f"%{escaped}%"


def _matches(column, pattern: str):
    return column.ilike(pattern, escape="\\")


def _project_hits(session: Session, pattern: str, filters: Dict[str, Optional[str]], limit: int) -> List[Dict[str, Any]]:
    query = select(Project).where(
        or_(
            _matches(Project.name, pattern),
            _matches(Project.description, pattern),
            _matches(cast(Project.tags, String), pattern),
        )
    )
    if filters.get("status"):
        query = query.where(Project.status == filters["status"])
    if filters.get("priority"):
        query = query.where(Project.priority == filters["priority"])
    projects = session.exec(query.limit(limit)).all()
    creators = load_users(session, (p.created_by_id for p in projects))
    return [
        {
            "_type": "project",
            "id": p.id,
            "name": p.name,
            "description": p.description,
            "status": p.status,
            "priority": p.priority,
            "deadline": p.deadline,
            "created_by": creators[p.created_by_id].name if p.created_by_id in creators else None,
            "created_at": p.created_at,
        }
        for p in projects
    ]


def _requirement_hits(session: Session, pattern: str, filters: Dict[str, Optional[str]], limit: int) -> List[Dict[str, Any]]:
    query = select(Requirement).where(
        or_(_matches(Requirement.title, pattern), _matches(Requirement.description, pattern))
    )
    for field in ("status", "priority", "category"):
        if filters.get(field):
            query = query.where(getattr(Requirement, field) == filters[field])
    requirements = session.exec(query.limit(limit)).all()
    project_ids = {r.project_id for r in requirements}
    projects = {}
    if project_ids:
        projects = {p.id: p for p in session.exec(select(Project).where(Project.id.in_(project_ids))).all()}
    return [
        {
            "_type": "requirement",
            "id": r.id,
            "title": r.title,
            "description": r.description,
            "status": r.status,
            "priority": r.priority,
            "category": r.category,
            "project": {"id": r.project_id, "name": projects[r.project_id].name} if r.project_id in projects else None,
            "created_at": r.created_at,
        }
        for r in requirements
    ]


def _asset_hits(session: Session, pattern: str, filters: Dict[str, Optional[str]], limit: int) -> List[Dict[str, Any]]:
    assets = session.exec(
        select(Asset)
        .where(
            or_(
                _matches(Asset.name, pattern),
                _matches(Asset.description, pattern),
                _matches(cast(Asset.tags, String), pattern),
            )
        )
        .limit(limit)
    ).all()
    return [
        {
            "_type": "asset",
            "id": a.id,
            "name": a.name,
            "description": a.description,
            "type": a.type,
            "file_name": a.file_name,
            "project_id": a.project_id,
            "created_at": a.created_at,
        }
        for a in assets
    ]


def _user_hits(session: Session, pattern: str, filters: Dict[str, Optional[str]], limit: int) -> List[Dict[str, Any]]:
    users = session.exec(
        select(User).where(or_(_matches(User.name, pattern), _matches(User.email, pattern))).limit(limit)
    ).all()
    return [
        {
            "_type": "user",
            "id": u.id,
            "name": u.name,
            "email": u.email,
            "role": u.role,
            "avatar": u.avatar,
            "created_at": u.created_at,
        }
        for u in users
    ]


SEARCHERS: Dict[str, Callable[..., List[Dict[str, Any]]]] = {
    "projects": _project_hits,
    "requirements": _requirement_hits,
    "assets": _asset_hits,
    "users": _user_hits,
}


def _run_in_own_session(bind: Engine, searcher, pattern, filters, limit):
    with Session(bind) as session:
        return searcher(session, pattern, filters, limit)


def search(
    session: Session,
    q: Optional[str],
    type: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    max_workers: int = 4,
) -> SearchResponse:
    """Case-insensitive substring search over projects, requirements, assets and users.

    Each requested entity type is queried in its own worker thread and
    session. Without a specific ``type`` the hits are merged newest first.
    """
    query_text = (q or "").strip()
    if len(query_text) < MIN_QUERY_LENGTH:
        raise ValidationError("Search query must be at least 2 characters")
    type = TYPE_ALIASES.get(type, type)
    if type and type != "all" and type not in SEARCH_TYPES:
        raise ValidationError(f"Invalid search type: {type}")

    limit = max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))
    pattern = _pattern(query_text)
    filters = {"status": status, "priority": priority, "category": category}
    wanted = SEARCH_TYPES if not type or type == "all" else (type,)
    logger.debug("Searching %s for %r", ", ".join(wanted), query_text)

    bind = session.get_bind()
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(wanted)))) as pool:
        futures = {
            name: pool.submit(_run_in_own_session, bind, SEARCHERS[name], pattern, filters, limit)
            for name in wanted
        }
        grouped = {name: futures[name].result() for name in wanted}

    counts = SearchCounts(**{name: len(hits) for name, hits in grouped.items()})
    if len(wanted) == 1:
        data = grouped[wanted[0]]
        counts.total = len(data)
        return SearchResponse(query=query_text, counts=counts, data=data)

    merged = [hit for name in wanted for hit in grouped[name]]
    merged.sort(key=lambda hit: hit.get("created_at") or datetime.min, reverse=True)
    counts.total = len(merged)
    return SearchResponse(query=query_text, counts=counts, data=merged, grouped=grouped)


def suggestions(session: Session, q: Optional[str]) -> List[Suggestion]:
    prefix = (q or "").strip()
    if not prefix:
        return []
    pattern = _pattern(prefix, prefix=True)
    projects = session.exec(
        select(Project.name).where(_matches(Project.name, pattern)).limit(SUGGESTION_LIMIT)
    ).all()
    titles = session.exec(
        select(Requirement.title).where(_matches(Requirement.title, pattern)).limit(SUGGESTION_LIMIT)
    ).all()
    return [Suggestion(text=name, type="project") for name in projects] + [
        Suggestion(text=title, type="requirement") for title in titles
    ]
