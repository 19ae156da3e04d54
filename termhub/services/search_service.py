"""Search across projects, users, tags and activity"""
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from termhub.core.config import settings
from termhub.models.activity import Activity
from termhub.models.project import Project
from termhub.models.user import User
from termhub.schemas.search import SearchResult
from termhub.schemas.common import UserSummary

SEARCH_TYPES = ("projects", "users", "tags", "activity")


def _like(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SearchService:
    @staticmethod
    async def search(session: AsyncSession, term: str, search_type: str) -> List[SearchResult]:
        """
        Case-insensitive substring search.

        Args:
            term: Search text, surrounding whitespace ignored
            search_type: One of projects, users, tags, activity

        Returns:
            List[SearchResult]: At most settings.SEARCH_LIMIT results
        """
        term = (term or "").strip()
        if not term:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search term is required")
        if search_type not in SEARCH_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Search type must be one of {', '.join(SEARCH_TYPES)}",
            )

        handler = getattr(SearchService, f"_search_{search_type}")
        return await handler(session, term)

    @staticmethod
    async def _search_projects(session: AsyncSession, term: str) -> List[SearchResult]:
        pattern = _like(term)
        stmt = (
            select(Project)
            .options(selectinload(Project.owner))
            .where(
                or_(
                    func.lower(Project.name).like(pattern, escape="\\"),
                    func.lower(Project.description).like(pattern, escape="\\"),
                )
            )
            .order_by(Project.last_activity.desc())
            .limit(settings.SEARCH_LIMIT)
        )
        projects = (await session.execute(stmt)).scalars().all()
        return [_project_result(p, "projects") for p in projects]

    @staticmethod
    async def _search_users(session: AsyncSession, term: str) -> List[SearchResult]:
        pattern = _like(term)
        stmt = (
            select(User)
            .where(
                or_(
                    func.lower(User.username).like(pattern, escape="\\"),
                    func.lower(User.full_name).like(pattern, escape="\\"),
                )
            )
            .order_by(User.username)
            .limit(settings.SEARCH_LIMIT)
        )
        users = (await session.execute(stmt)).scalars().all()
        return [
            SearchResult(
                type="users",
                id=user.id,
                name=user.username,
                description=user.bio,
                image_url=user.profile_image,
                user=UserSummary.model_validate(user),
                time=user.join_date,
            )
            for user in users
        ]

    @staticmethod
    async def _search_tags(session: AsyncSession, term: str) -> List[SearchResult]:
        # Tags are stored as a JSON list, so elements are matched here rather than in SQL
        needle = term.lower()
        stmt = (
            select(Project)
            .options(selectinload(Project.owner))
            .order_by(Project.last_activity.desc())
        )
        results = []
        for project in (await session.execute(stmt)).scalars():
            if any(needle in tag.lower() for tag in project.tags or []):
                results.append(_project_result(project, "tags"))
                if len(results) >= settings.SEARCH_LIMIT:
                    break
        return results

    @staticmethod
    async def _search_activity(session: AsyncSession, term: str) -> List[SearchResult]:
        pattern = _like(term)
        stmt = (
            select(Activity, Project.name)
            .join(Project, Project.id == Activity.project_id)
            .options(selectinload(Activity.user))
            .where(
                or_(
                    func.lower(Activity.message).like(pattern, escape="\\"),
                    func.lower(Activity.action).like(pattern, escape="\\"),
                )
            )
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(settings.SEARCH_LIMIT)
        )
        rows = (await session.execute(stmt)).all()
        return [
            SearchResult(
                type="activity",
                id=str(entry.id),
                name=project_name,
                description=entry.message or entry.action,
                project_id=entry.project_id,
                user=UserSummary.model_validate(entry.user) if entry.user else None,
                time=entry.created_at,
            )
            for entry, project_name in rows
        ]


def _project_result(project: Project, result_type: str) -> SearchResult:
    return SearchResult(
        type=result_type,
        id=project.id,
        name=project.name,
        description=project.description,
        project_id=project.id,
        image_url=project.image_url,
        user=UserSummary.model_validate(project.owner),
        time=project.last_activity,
    )
