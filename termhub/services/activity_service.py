"""Activity log: append-only project events, per-project listings and feeds.

Appends never commit on their own. The caller commits the activity row in the
same transaction as the project change it describes, so a failed append rolls
the project change back as well.
"""
import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from termhub.models.activity import Activity, DiscussionMessage
from termhub.models.project import Project
from termhub.models.user import User, friendships
from termhub.schemas.activity import ActivityResponse
from termhub.schemas.project import FeedItem

logger = logging.getLogger(__name__)

FEED_SCOPES = ("local", "global")
FEED_SORTS = ("recency", "popularity")
# Older clients send "date" for the recency sort
FEED_SORT_ALIASES = {"date": "recency"}


class ActivityService:
    """Service for the activity log and discussion board"""

    @staticmethod
    def append(
        session: AsyncSession,
        project_id: str,
        user_id: Optional[str],
        action: str,
        message: Optional[str] = None,
    ) -> Activity:
        """
        Stage a new activity entry in the current transaction.

        Args:
            session: Database session with the pending project change
            project_id: Project the event belongs to
            user_id: Acting user
            action: Event label, e.g. "checked-out"
            message: Optional free text

        Returns:
            Activity: The staged entry (id assigned on flush)
        """
        entry = Activity(project_id=project_id, user_id=user_id, action=action, message=message)
        session.add(entry)
        return entry

    @staticmethod
    async def list_for_project(session: AsyncSession, project_id: str, limit: Optional[int] = None) -> List[Activity]:
        """Entries for a project, newest first."""
        stmt = (
            select(Activity)
            .options(selectinload(Activity.user))
            .where(Activity.project_id == project_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def post_message(session: AsyncSession, project: Project, user: User, message: str) -> Activity:
        """
        Append a user message to a project's activity log. Members only.

        Raises:
            HTTPException: If the user is not a project member (403)
        """
        if not project.has_member(user.id):
            logger.warning("User %s tried to post activity on project %s without membership", user.id, project.id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only project members can post messages")

        entry = ActivityService.append(session, project.id, user.id, "message", message)
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        return await ActivityService.get_entry(session, entry.id)

    @staticmethod
    async def get_entry(session: AsyncSession, entry_id: int) -> Activity:
        stmt = select(Activity).options(selectinload(Activity.user)).where(Activity.id == entry_id)
        result = await session.execute(stmt)
        return result.scalars().one()

    @staticmethod
    def normalize_sort_key(sort_key: str) -> str:
        """Map a requested sort (or its alias) to a feed sort, 400 if unknown."""
        sort_key = FEED_SORT_ALIASES.get(sort_key, sort_key)
        if sort_key not in FEED_SORTS:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"sortBy must be one of {', '.join(FEED_SORTS)}")
        return sort_key

    @staticmethod
    async def list_feed(session: AsyncSession, scope: str, sort_key: str, user: User) -> List[FeedItem]:
        """
        Build the project feed.

        Args:
            scope: "local" (projects owned by the user or their friends) or "global" (all projects)
            sort_key: "recency" (last activity) or "popularity" (download count); "date" means "recency"
            user: Requesting user

        Returns:
            List[FeedItem]: Projects with their member count and latest activity entry
        """
        if scope not in FEED_SCOPES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"feedType must be one of {', '.join(FEED_SCOPES)}")
        sort_key = ActivityService.normalize_sort_key(sort_key)

        stmt = select(Project).options(
            selectinload(Project.owner),
            selectinload(Project.checked_out_by),
            selectinload(Project.members),
        )
        if scope == "local":
            friend_ids = select(friendships.c.friend_id).where(friendships.c.user_id == user.id)
            stmt = stmt.where((Project.owner_id == user.id) | Project.owner_id.in_(friend_ids))

        if sort_key == "popularity":
            stmt = stmt.order_by(Project.downloads.desc(), Project.last_activity.desc())
        else:
            stmt = stmt.order_by(Project.last_activity.desc())

        projects = list((await session.execute(stmt)).scalars().all())
        latest = await ActivityService._latest_by_project(session, [p.id for p in projects])

        items = []
        for project in projects:
            item = FeedItem.model_validate(project)
            item.member_count = len(project.members)
            entry = latest.get(project.id)
            item.latest_activity = ActivityResponse.model_validate(entry) if entry else None
            items.append(item)
        return items

    @staticmethod
    async def _latest_by_project(session: AsyncSession, project_ids: List[str]) -> dict:
        if not project_ids:
            return {}
        newest = (
            select(Activity.project_id, func.max(Activity.id).label("max_id"))
            .where(Activity.project_id.in_(project_ids))
            .group_by(Activity.project_id)
            .subquery()
        )
        stmt = (
            select(Activity)
            .options(selectinload(Activity.user))
            .join(newest, Activity.id == newest.c.max_id)
        )
        result = await session.execute(stmt)
        return {entry.project_id: entry for entry in result.scalars().all()}

    # --- Discussion board ---

    @staticmethod
    async def list_discussion(session: AsyncSession, project_id: str) -> List[DiscussionMessage]:
        """Discussion entries in conversation order, oldest first."""
        stmt = (
            select(DiscussionMessage)
            .options(selectinload(DiscussionMessage.user))
            .where(DiscussionMessage.project_id == project_id)
            .order_by(DiscussionMessage.created_at, DiscussionMessage.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def post_discussion(session: AsyncSession, project_id: str, user: User, message: str) -> DiscussionMessage:
        entry = DiscussionMessage(project_id=project_id, user_id=user.id, message=message)
        session.add(entry)
        await session.commit()
        stmt = (
            select(DiscussionMessage)
            .options(selectinload(DiscussionMessage.user))
            .where(DiscussionMessage.id == entry.id)
        )
        return (await session.execute(stmt)).scalars().one()
