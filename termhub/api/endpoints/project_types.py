"""Public listing of project types"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from termhub.core.database import get_db
from termhub.schemas.admin import ProjectTypesEnvelope
from termhub.services.project_type_service import list_project_types

router = APIRouter(prefix="/project-types", tags=["project types"])


@router.get("", response_model=ProjectTypesEnvelope)
async def get_project_types(session: AsyncSession = Depends(get_db)) -> ProjectTypesEnvelope:
    return ProjectTypesEnvelope(types=await list_project_types(session))
