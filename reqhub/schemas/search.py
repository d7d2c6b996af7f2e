from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional

SearchType = Literal["all", "projects", "requirements", "assets", "users"]


class SearchCounts(BaseModel):
    projects: int = 0
    requirements: int = 0
    assets: int = 0
    users: int = 0
    total: int = 0


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    counts: SearchCounts
    data: List[Dict[str, Any]]
    grouped: Optional[Dict[str, List[Dict[str, Any]]]] = None


class Suggestion(BaseModel):
    text: str
    type: str


class SuggestionResponse(BaseModel):
    success: bool = True
    suggestions: List[Suggestion]
