"""Administration endpoints. Every route requires the admin role."""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from termhub.core.database import get_db
from termhub.dependencies.auth import ensure_actor, require_admin
from termhub.models.user import User
from termhub.schemas.admin import (
    AdminActor,
    AdminProjectsEnvelope,
    AdminUser,
    AdminUserEnvelope,
    AdminUsersEnvelope,
    DashboardEnvelope,
    ProjectTypeCreate,
    ProjectTypesEnvelope,
    RoleUpdate,
)
from termhub.schemas.common import Envelope
from termhub.schemas.project import ProjectEnvelope, ProjectResponse, ProjectSummary, ProjectUpdate
from termhub.services import project_type_service
from termhub.services.admin_service import AdminService
from termhub.services.project_service import ProjectService

router = APIRouter(prefix="/admin", tags=["admin"])


def _check_admin_id(admin: User, admin_id: Optional[str]) -> None:
    ensure_actor(admin, admin_id)


@router.get("/dashboard", response_model=DashboardEnvelope)
async def dashboard(
    admin_id: Optional[str] = Query(None, alias="adminId"),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> DashboardEnvelope:
    _check_admin_id(admin, admin_id)
    return DashboardEnvelope(stats=await AdminService.dashboard(session))


@router.get("/users", response_model=AdminUsersEnvelope)
async def list_users(
    admin_id: Optional[str] = Query(None, alias="adminId"),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> AdminUsersEnvelope:
    _check_admin_id(admin, admin_id)
    return AdminUsersEnvelope(users=await AdminService.list_users(session))


@router.patch("/users/{user_id}/role", response_model=AdminUserEnvelope)
async def set_role(
    user_id: str,
    data: RoleUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> AdminUserEnvelope:
    _check_admin_id(admin, data.admin_id)
    user = await AdminService.set_role(session, admin, user_id, data.role)
    return AdminUserEnvelope(message="Role updated", user=AdminUser.model_validate(user))


@router.delete("/users/{user_id}", response_model=Envelope)
async def delete_user(
    user_id: str,
    body: Optional[AdminActor] = Body(None),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> Envelope:
    _check_admin_id(admin, body.admin_id if body else None)
    await AdminService.delete_user(session, admin, user_id)
    return Envelope(message="User deleted")


@router.get("/projects", response_model=AdminProjectsEnvelope)
async def list_projects(
    admin_id: Optional[str] = Query(None, alias="adminId"),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> AdminProjectsEnvelope:
    _check_admin_id(admin, admin_id)
    projects = await ProjectService.list_projects(session)
    return AdminProjectsEnvelope(projects=[ProjectSummary.model_validate(p) for p in projects])


@router.put("/projects/{project_id}", response_model=ProjectEnvelope)
async def edit_project(
    project_id: str,
    data: ProjectUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    _check_admin_id(admin, data.requester_id)
    project = await ProjectService.edit_project(session, admin, project_id, data, enforce_owner=False)
    return ProjectEnvelope(message="Project updated", project=ProjectResponse.model_validate(project))


@router.delete("/projects/{project_id}", response_model=Envelope)
async def delete_project(
    project_id: str,
    body: Optional[AdminActor] = Body(None),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> Envelope:
    _check_admin_id(admin, body.admin_id if body else None)
    await ProjectService.delete_project(session, admin, project_id, enforce_owner=False)
    return Envelope(message="Project deleted")


@router.post("/projects/{project_id}/unlock", response_model=ProjectEnvelope)
async def force_unlock(
    project_id: str,
    body: Optional[AdminActor] = Body(None),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    """Release a checkout whose holder is unavailable."""
    _check_admin_id(admin, body.admin_id if body else None)
    project = await ProjectService.force_unlock(session, admin, project_id)
    return ProjectEnvelope(message="Checkout released", project=ProjectResponse.model_validate(project))


@router.post("/project-types", response_model=ProjectTypesEnvelope, status_code=201)
async def add_project_type(
    data: ProjectTypeCreate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> ProjectTypesEnvelope:
    _check_admin_id(admin, data.admin_id)
    types = await project_type_service.add_project_type(session, data.name)
    return ProjectTypesEnvelope(message="Project type added", types=types)


@router.delete("/project-types/{name}", response_model=ProjectTypesEnvelope)
async def delete_project_type(
    name: str,
    body: Optional[AdminActor] = Body(None),
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> ProjectTypesEnvelope:
    _check_admin_id(admin, body.admin_id if body else None)
    types = await project_type_service.delete_project_type(session, name)
    return ProjectTypesEnvelope(message="Project type deleted", types=types)
