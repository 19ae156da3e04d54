"""Pydantic schemas for project types and administration"""
from typing import List, Literal, Optional

from pydantic import Field

from termhub.schemas.common import CamelModel, Envelope
from termhub.schemas.project import ProjectSummary
from termhub.schemas.user import UserResponse


class ProjectTypeCreate(CamelModel):
    admin_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=64)


class AdminActor(CamelModel):
    admin_id: Optional[str] = None


class RoleUpdate(CamelModel):
    admin_id: Optional[str] = None
    role: Literal["user", "admin"]


class ProjectTypesEnvelope(Envelope):
    types: List[str]


class DashboardStats(CamelModel):
    users: int
    admins: int
    projects: int
    checked_out_projects: int
    activity_entries: int
    total_downloads: int


class DashboardEnvelope(Envelope):
    stats: DashboardStats


class AdminUser(UserResponse):
    project_count: int = 0


class AdminUserEnvelope(Envelope):
    user: AdminUser


class AdminUsersEnvelope(Envelope):
    users: List[AdminUser]


class AdminProjectsEnvelope(Envelope):
    projects: List[ProjectSummary]
