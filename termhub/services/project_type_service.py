"""Service for the admin-managed list of project types (CRUD operations only)."""
import logging
from typing import Iterable, List

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from termhub.models.project import Project, ProjectType

logger = logging.getLogger(__name__)


async def list_project_types(db: AsyncSession) -> List[str]:
    """Return all type names, alphabetically."""
    result = await db.execute(select(ProjectType.name).order_by(ProjectType.name))
    return list(result.scalars().all())


async def seed_project_types(db: AsyncSession, names: Iterable[str]) -> None:
    """Insert any default type that is missing. Existing rows are left alone."""
    existing = set(await list_project_types(db))
    missing = [name for name in names if name not in existing]
    for name in missing:
        db.add(ProjectType(name=name))
    if missing:
        await db.commit()
        logger.info("Seeded project types: %s", ", ".join(missing))


async def add_project_type(db: AsyncSession, name: str) -> List[str]:
    name = name.strip().lower()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project type name is required")
    db.add(ProjectType(name=name))
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project type already exists") from e
    return await list_project_types(db)


async def delete_project_type(db: AsyncSession, name: str) -> List[str]:
    """
    Delete a type that no project uses.

    Raises:
        HTTPException: 404 unknown type, 409 type still in use
    """
    result = await db.execute(select(ProjectType).where(ProjectType.name == name))
    project_type = result.scalars().first()
    if project_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project type not found")

    in_use = await db.execute(select(Project.id).where(Project.type == name).limit(1))
    if in_use.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project type is still used by projects")

    await db.delete(project_type)
    await db.commit()
    return await list_project_types(db)
