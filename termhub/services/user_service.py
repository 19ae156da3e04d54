"""User service: accounts, credentials and profiles"""
import logging
from typing import List
from uuid import uuid4

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from termhub.core.config import settings
from termhub.core.security import hash_password, pwd_context, verify_password
from termhub.models.project import Project, project_members
from termhub.models.user import FriendRequest, User
from termhub.schemas.user import SignupRequest, UserUpdate

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "bio", "location", "company", "website", "languages", "profile_image")


class UserService:
    """Service for user-related operations"""

    @staticmethod
    async def get_user(session: AsyncSession, user_id: str) -> User | None:
        """
        Get user by id, with friends loaded and column values refreshed from the database.

        Args:
            session: Database session
            user_id: User id

        Returns:
            User: User object if found, None otherwise
        """
        stmt = (
            select(User)
            .options(selectinload(User.friends))
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def require_user(session: AsyncSession, user_id: str, label: str = "User") -> User:
        """Like get_user, but raises 404 when the user does not exist."""
        user = await UserService.get_user(session, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
        return user

    @staticmethod
    async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
        stmt = select(User).where(User.email == email.lower())
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def _ensure_unique(session: AsyncSession, username: str | None, email: str | None, exclude_id: str | None = None) -> None:
        if username is not None:
            stmt = select(User.id).where(User.username == username)
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            if (await session.execute(stmt)).first():
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")
        if email is not None:
            stmt = select(User.id).where(User.email == email.lower())
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            if (await session.execute(stmt)).first():
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    @staticmethod
    async def signup(session: AsyncSession, data: SignupRequest) -> User:
        """
        Create a new account.

        Args:
            session: Database session
            data: Validated signup payload

        Returns:
            User: Created user

        Raises:
            HTTPException: If username or email already exists (409 Conflict)
        """
        email = str(data.email).lower()
        await UserService._ensure_unique(session, data.username, email)

        role = "admin" if email in {e.lower() for e in settings.ADMIN_EMAILS} else "user"
        new_user = User(
            id=str(uuid4()),
            username=data.username,
            email=email,
            password_hash=hash_password(data.password),
            role=role,
            languages=[],
            friends=[],
        )

        try:
            session.add(new_user)
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Username or email already registered",
            ) from e

        logger.info("Registered user %s (%s)", new_user.username, new_user.id)
        return await UserService.get_user(session, new_user.id)

    @staticmethod
    async def authenticate(session: AsyncSession, email: str, password: str) -> User:
        """
        Verify sign-in credentials.

        Raises:
            HTTPException: On unknown email or wrong password (401), with the same message for both
        """
        user = await UserService.get_user_by_email(session, email)
        if user is None:
            # Spend the same hashing time as a real check
            pwd_context.dummy_verify()
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
        if not verify_password(password, user.password_hash):
            logger.warning("Failed sign-in for user %s", user.id)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
        return await UserService.get_user(session, user.id)

    @staticmethod
    async def update_profile(session: AsyncSession, requester: User, user_id: str, data: UserUpdate) -> User:
        """
        Apply a profile edit. Users may only edit their own profile.

        Raises:
            HTTPException: 404 unknown user, 403 editing someone else, 409 username/email taken
        """
        user = await UserService.require_user(session, user_id)
        if requester.id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only edit your own profile")

        changes = data.model_dump(exclude_unset=True)
        await UserService._ensure_unique(
            session,
            changes.get("username"),
            str(changes["email"]) if changes.get("email") else None,
            exclude_id=user.id,
        )

        if changes.get("username"):
            user.username = changes["username"]
        if changes.get("email"):
            user.email = str(changes["email"]).lower()
        if changes.get("password"):
            user.password_hash = hash_password(changes["password"])
        for field in PROFILE_FIELDS:
            if field in changes:
                value = changes[field]
                if field == "languages" and value is None:
                    value = []
                setattr(user, field, value)

        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username or email already registered") from e

        return await UserService.get_user(session, user.id)

    @staticmethod
    async def get_projects_for_user(session: AsyncSession, user_id: str) -> List[Project]:
        """Projects the user owns or is a member of, most recently active first."""
        member_of = select(project_members.c.project_id).where(project_members.c.user_id == user_id)
        stmt = (
            select(Project)
            .options(selectinload(Project.owner), selectinload(Project.checked_out_by))
            .where(or_(Project.owner_id == user_id, Project.id.in_(member_of)))
            .order_by(Project.last_activity.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_pending_requests(session: AsyncSession, user_id: str) -> List[User]:
        """Users who sent a friend request to user_id that is still unanswered."""
        stmt = (
            select(User)
            .join(FriendRequest, FriendRequest.requester_id == User.id)
            .where(FriendRequest.recipient_id == user_id)
            .order_by(FriendRequest.created_at)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
