from pydantic import BaseModel
from typing import Any, Dict, List


class Overview(BaseModel):
    total_projects: int
    total_requirements: int
    total_assets: int
    completion_rate: int


class DashboardStats(BaseModel):
    overview: Overview
    projects_by_status: Dict[str, int]
    requirements_by_status: Dict[str, int]
    requirements_by_priority: Dict[str, int]
    recent_projects: List[Dict[str, Any]]
    recent_requirements: List[Dict[str, Any]]
    recent_activity: List[Dict[str, Any]]
    upcoming_deadlines: List[Dict[str, Any]]


class DashboardStatsResponse(BaseModel):
    success: bool = True
    data: DashboardStats
