"""API router combining all endpoints"""
from fastapi import APIRouter

from termhub.api.endpoints import admin, auth, project_types, projects, search, users

router = APIRouter(prefix="/api")

# Include all endpoint routers
router.include_router(auth.router)
router.include_router(users.router)
router.include_router(projects.router)
router.include_router(search.router)
router.include_router(project_types.router)
router.include_router(admin.router)

__all__ = ["router"]
