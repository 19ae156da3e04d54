"""Administrative operations over users and site-wide statistics"""
import logging
from typing import List

from fastapi import HTTPException, status
from sqlalchemy import delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from termhub.models.activity import Activity, DiscussionMessage
from termhub.models.project import CHECKED_IN, CHECKED_OUT, Project, ProjectFile, project_members
from termhub.models.user import FriendRequest, User, friendships
from termhub.schemas.admin import AdminUser, DashboardStats
from termhub.services.activity_service import ActivityService
from termhub.services.user_service import UserService

logger = logging.getLogger(__name__)


class AdminService:
    @staticmethod
    async def dashboard(session: AsyncSession) -> DashboardStats:
        async def count(stmt) -> int:
            return (await session.execute(stmt)).scalar_one() or 0

        return DashboardStats(
            users=await count(select(func.count(User.id))),
            admins=await count(select(func.count(User.id)).where(User.role == "admin")),
            projects=await count(select(func.count(Project.id))),
            checked_out_projects=await count(
                select(func.count(Project.id)).where(Project.checkout_status == CHECKED_OUT)
            ),
            activity_entries=await count(select(func.count(Activity.id))),
            total_downloads=await count(select(func.coalesce(func.sum(Project.downloads), 0))),
        )

    @staticmethod
    async def list_users(session: AsyncSession) -> List[AdminUser]:
        """All users with their number of owned projects."""
        owned = (
            select(Project.owner_id, func.count(Project.id).label("project_count"))
            .group_by(Project.owner_id)
            .subquery()
        )
        stmt = (
            select(User, func.coalesce(owned.c.project_count, 0))
            .outerjoin(owned, owned.c.owner_id == User.id)
            .options(selectinload(User.friends))
            .order_by(User.join_date)
        )
        rows = (await session.execute(stmt)).all()
        users = []
        for user, project_count in rows:
            item = AdminUser.model_validate(user)
            item.project_count = project_count
            users.append(item)
        return users

    @staticmethod
    async def set_role(session: AsyncSession, admin: User, user_id: str, role: str) -> User:
        """
        Change a user's role.

        Raises:
            HTTPException: 404 unknown user, 409 when demoting the last remaining admin
        """
        user = await UserService.require_user(session, user_id)
        if user.role == "admin" and role != "admin":
            admins = (await session.execute(select(func.count(User.id)).where(User.role == "admin"))).scalar_one()
            if admins <= 1:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot demote the last administrator")

        user.role = role
        await session.commit()
        logger.info("Admin %s set role of %s to %s", admin.id, user_id, role)
        return await UserService.get_user(session, user_id)

    @staticmethod
    async def delete_user(session: AsyncSession, admin: User, user_id: str) -> None:
        """
        Remove a user account.

        Projects they own must be transferred or deleted first. Checkouts they
        hold are released, and they are dropped from memberships and friendships.

        Raises:
            HTTPException: 404 unknown user, 409 self-deletion or user still owns projects
        """
        user = await UserService.require_user(session, user_id)
        if user.id == admin.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Administrators cannot delete themselves")

        owned = await session.execute(select(Project.id).where(Project.owner_id == user.id).limit(1))
        if owned.first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User still owns projects; transfer or delete them first",
            )

        held = (await session.execute(select(Project.id).where(Project.checked_out_by_id == user.id))).scalars().all()
        if held:
            await session.execute(
                update(Project)
                .where(Project.checked_out_by_id == user.id)
                .values(checkout_status=CHECKED_IN, checked_out_by_id=None)
                .execution_options(synchronize_session=False)
            )
            for project_id in held:
                ActivityService.append(
                    session, project_id, admin.id, "force-unlocked", f"Released checkout held by deleted user {user.username}"
                )

        await session.execute(delete(project_members).where(project_members.c.user_id == user.id))
        await session.execute(
            delete(friendships).where(or_(friendships.c.user_id == user.id, friendships.c.friend_id == user.id))
        )
        await session.execute(
            delete(FriendRequest).where(
                or_(FriendRequest.requester_id == user.id, FriendRequest.recipient_id == user.id)
            )
        )
        # History stays, attributed to nobody
        authored = (
            (Activity, Activity.user_id),
            (DiscussionMessage, DiscussionMessage.user_id),
            (ProjectFile, ProjectFile.uploader_id),
        )
        for model, column in authored:
            await session.execute(update(model).where(column == user.id).values({column.key: None}))
        await session.execute(delete(User).where(User.id == user.id))
        await session.commit()
        logger.info("Admin %s deleted user %s", admin.id, user_id)
