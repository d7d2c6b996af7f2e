from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from reqhub.api.endpoints.auth import get_current_user
from reqhub.core.config import Settings, get_settings
from reqhub.database import get_session
from reqhub.models.user import User
from reqhub.schemas.search import SearchResponse, SuggestionResponse
from reqhub.services import search_service

router = APIRouter()


@router.get("/", response_model=SearchResponse)
def search(
    q: Optional[str] = None,
    type: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(search_service.DEFAULT_LIMIT, ge=1),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    return search_service.search(
        session,
        q,
        type=type,
        status=status,
        priority=priority,
        category=category,
        limit=limit,
        max_workers=settings.search_max_workers,
    )


@router.get("/suggestions", response_model=SuggestionResponse)
def suggestions(
    q: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return SuggestionResponse(suggestions=search_service.suggestions(session, q))
