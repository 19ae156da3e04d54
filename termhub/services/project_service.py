"""Project service: creation, membership, ownership and the checkout/check-in lock.

Every operation re-reads the project from the database before checking
authorization and state. Lock transitions are conditional UPDATEs, so two
concurrent checkouts cannot both observe "checked-in". Each change is
committed together with its activity entry in one transaction.
"""
import logging
from typing import List, Optional
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import delete, insert, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from termhub.core.database import utcnow
from termhub.models.activity import Activity, DiscussionMessage
from termhub.models.project import (
    CHECKED_IN,
    CHECKED_OUT,
    Project,
    ProjectFile,
    ProjectType,
    project_members,
)
from termhub.models.user import User
from termhub.schemas.project import ProjectCreate, ProjectUpdate
from termhub.services import file_storage
from termhub.services.activity_service import ActivityService
from termhub.services.friend_service import are_friends
from termhub.services.user_service import UserService

logger = logging.getLogger(__name__)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ProjectService:
    @staticmethod
    async def get_project(session: AsyncSession, project_id: str) -> Project | None:
        """Load a project with owner, lock holder, members and files, overwriting any cached state."""
        stmt = (
            select(Project)
            .options(
                selectinload(Project.owner),
                selectinload(Project.checked_out_by),
                selectinload(Project.members),
                selectinload(Project.files),
            )
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def require_project(session: AsyncSession, project_id: str) -> Project:
        project = await ProjectService.get_project(session, project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
        return project

    @staticmethod
    async def _ensure_known_type(session: AsyncSession, type_name: str) -> None:
        stmt = select(ProjectType.id).where(ProjectType.name == type_name)
        if (await session.execute(stmt)).first() is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown project type: {type_name}")

    @staticmethod
    def _attach_files(project: Project, uploader_id: str, stored: List[file_storage.StoredUpload]) -> None:
        for item in stored:
            project.files.append(
                ProjectFile(
                    id=str(uuid4()),
                    original_name=item.original_name,
                    stored_name=item.stored_name,
                    mime_type=item.mime_type,
                    size=item.size,
                    uploader_id=uploader_id,
                    path=item.path,
                    uploaded_at=utcnow(),
                )
            )

    @staticmethod
    async def _commit_or_discard(session: AsyncSession, written_paths: List[str]) -> None:
        """Commit the transaction, deleting files written for it if the commit fails."""
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            await file_storage.discard(written_paths)
            raise

    @staticmethod
    async def create_project(
        session: AsyncSession,
        owner: User,
        data: ProjectCreate,
        files: Optional[List[UploadFile]] = None,
        image: Optional[UploadFile] = None,
    ) -> Project:
        """
        Create a project owned by `owner`, who becomes its first member.

        Args:
            session: Database session
            owner: Authenticated creator
            data: Validated name/description/type/tags/version
            files: Optional initial project files
            image: Optional cover image

        Returns:
            Project: The new project, checked in
        """
        await ProjectService._ensure_known_type(session, data.type)

        project_id = str(uuid4())
        now = utcnow()
        project = Project(
            id=project_id,
            name=data.name,
            description=data.description,
            type=data.type,
            version=data.version,
            tags=data.tags,
            owner_id=owner.id,
            checkout_status=CHECKED_IN,
            checked_out_by_id=None,
            downloads=0,
            created_at=now,
            last_activity=now,
            members=[owner],
            files=[],
        )

        stored = await file_storage.save_uploads(project_id, files or [])
        written = [item.path for item in stored]
        if image is not None and image.filename:
            try:
                cover = await file_storage.save_upload(project_id, image, subdir="images")
            except Exception:
                await file_storage.discard(written)
                raise
            written.append(cover.path)
            project.image_path = cover.path
        ProjectService._attach_files(project, owner.id, stored)

        session.add(project)
        ActivityService.append(session, project_id, owner.id, "created", f"Created project {data.name}")
        await ProjectService._commit_or_discard(session, written)

        logger.info("User %s created project %s (%s)", owner.id, project.name, project_id)
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def edit_project(
        session: AsyncSession,
        requester: User,
        project_id: str,
        data: ProjectUpdate,
        image: Optional[UploadFile] = None,
        enforce_owner: bool = True,
    ) -> Project:
        """
        Update descriptive fields. Owner only, unless called from an admin route.

        Membership, files and checkout state are never touched here.
        """
        project = await ProjectService.require_project(session, project_id)
        if enforce_owner and project.owner_id != requester.id:
            logger.warning("User %s tried to edit project %s without ownership", requester.id, project_id)
            raise _forbidden("Only the project owner can edit this project")

        changes = data.model_dump(exclude_unset=True, exclude={"requester_id"})
        if changes.get("type"):
            await ProjectService._ensure_known_type(session, changes["type"])

        for field in ("name", "description", "type", "version"):
            if changes.get(field):
                setattr(project, field, changes[field])
        if "tags" in changes:
            project.tags = changes["tags"] or []

        written = []
        previous_image = project.image_path
        if image is not None and image.filename:
            cover = await file_storage.save_upload(project_id, image, subdir="images")
            written.append(cover.path)
            project.image_path = cover.path

        project.last_activity = utcnow()
        await ProjectService._commit_or_discard(session, written)
        if written and previous_image:
            await file_storage.discard([previous_image])
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def delete_project(session: AsyncSession, requester: User, project_id: str, enforce_owner: bool = True) -> None:
        """Delete a project with its files, activity and discussion. Owner only, unless admin."""
        project = await ProjectService.require_project(session, project_id)
        if enforce_owner and project.owner_id != requester.id:
            logger.warning("User %s tried to delete project %s without ownership", requester.id, project_id)
            raise _forbidden("Only the project owner can delete this project")

        await session.execute(delete(Activity).where(Activity.project_id == project_id))
        await session.execute(delete(DiscussionMessage).where(DiscussionMessage.project_id == project_id))
        await session.delete(project)
        await session.commit()

        await file_storage.remove_project_directory(project_id)
        logger.info("User %s deleted project %s", requester.id, project_id)

    # --- Checkout / check-in state machine ---

    @staticmethod
    async def checkout(session: AsyncSession, actor: User, project_id: str) -> Project:
        """
        Take the project lock. checked-in -> checked-out(by actor).

        Raises:
            HTTPException: 404 unknown project, 403 actor not a member, 409 already checked out
        """
        project = await ProjectService.require_project(session, project_id)
        if not project.has_member(actor.id):
            logger.warning("User %s tried to check out project %s without membership", actor.id, project_id)
            raise _forbidden("Only project members can check out this project")
        if project.checkout_status != CHECKED_IN:
            raise _conflict("Project is already checked out")

        stmt = (
            update(Project)
            .where(Project.id == project_id, Project.checkout_status == CHECKED_IN)
            .values(checkout_status=CHECKED_OUT, checked_out_by_id=actor.id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            # Another request took the lock between our read and this update
            await session.rollback()
            raise _conflict("Project is already checked out")

        ActivityService.append(session, project_id, actor.id, CHECKED_OUT)
        await ProjectService._commit_or_discard(session, [])

        logger.info("User %s checked out project %s", actor.id, project_id)
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def checkin(
        session: AsyncSession,
        actor: User,
        project_id: str,
        message: str,
        version: str,
        files: Optional[List[UploadFile]] = None,
    ) -> Project:
        """
        Release the project lock. checked-out(by actor) -> checked-in.

        Sets the new version, appends the uploaded files and refreshes last_activity.

        Raises:
            HTTPException: 404 unknown project, 409 not checked out, 403 lock held by another user
        """
        project = await ProjectService.require_project(session, project_id)
        if project.checkout_status != CHECKED_OUT:
            raise _conflict("Project is not checked out")
        if project.checked_out_by_id != actor.id:
            logger.warning("User %s tried to check in project %s held by %s", actor.id, project_id, project.checked_out_by_id)
            raise _forbidden("Only the user who checked out this project can check it in")

        stored = await file_storage.save_uploads(project_id, files or [])
        written = [item.path for item in stored]

        stmt = (
            update(Project)
            .where(
                Project.id == project_id,
                Project.checkout_status == CHECKED_OUT,
                Project.checked_out_by_id == actor.id,
            )
            .values(
                checkout_status=CHECKED_IN,
                checked_out_by_id=None,
                version=version,
                last_activity=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            await file_storage.discard(written)
            raise _conflict("Project lock changed during check-in")

        for item in stored:
            session.add(
                ProjectFile(
                    id=str(uuid4()),
                    project_id=project_id,
                    original_name=item.original_name,
                    stored_name=item.stored_name,
                    mime_type=item.mime_type,
                    size=item.size,
                    uploader_id=actor.id,
                    path=item.path,
                    uploaded_at=utcnow(),
                )
            )
        ActivityService.append(session, project_id, actor.id, CHECKED_IN, message)
        await ProjectService._commit_or_discard(session, written)

        logger.info("User %s checked in project %s at version %s", actor.id, project_id, version)
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def force_unlock(session: AsyncSession, admin: User, project_id: str) -> Project:
        """Admin release of a checkout whose holder is unavailable."""
        project = await ProjectService.require_project(session, project_id)
        if project.checkout_status != CHECKED_OUT:
            raise _conflict("Project is not checked out")

        holder = project.checked_out_by_id
        stmt = (
            update(Project)
            .where(Project.id == project_id, Project.checked_out_by_id == holder)
            .values(checkout_status=CHECKED_IN, checked_out_by_id=None)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            raise _conflict("Project lock changed during unlock")

        ActivityService.append(session, project_id, admin.id, "force-unlocked", f"Released checkout held by {holder}")
        await ProjectService._commit_or_discard(session, [])
        logger.info("Admin %s released checkout of project %s held by %s", admin.id, project_id, holder)
        return await ProjectService.get_project(session, project_id)

    # --- Membership and ownership ---

    @staticmethod
    async def add_member(session: AsyncSession, requester: User, project_id: str, friend_id: str) -> Project:
        """
        Add a friend of the requester (or of the owner) to the project. Members only.

        Raises:
            HTTPException: 404 unknown project/user, 403 requester not a member or not friends, 409 already a member
        """
        project = await ProjectService.require_project(session, project_id)
        if not project.has_member(requester.id):
            raise _forbidden("Only project members can add members")

        friend = await UserService.require_user(session, friend_id)
        if project.has_member(friend.id):
            raise _conflict("User is already a project member")

        friend_of_requester = await are_friends(session, requester.id, friend.id)
        if not friend_of_requester and not await are_friends(session, project.owner_id, friend.id):
            raise _forbidden("You can only add your friends or friends of the owner")

        await session.execute(insert(project_members).values(project_id=project_id, user_id=friend.id))
        ActivityService.append(session, project_id, requester.id, "member-added", f"Added {friend.username}")
        await ProjectService._commit_or_discard(session, [])
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def remove_member(session: AsyncSession, requester: User, project_id: str, member_id: str) -> Project:
        """
        Remove a member. Owner only. The owner and the current lock holder cannot be removed.

        Raises:
            HTTPException: 404 unknown project or non-member, 403 requester not owner, 409 owner or lock holder
        """
        project = await ProjectService.require_project(session, project_id)
        if project.owner_id != requester.id:
            raise _forbidden("Only the project owner can remove members")
        if member_id == project.owner_id:
            raise _conflict("The project owner cannot be removed; transfer ownership first")
        if not project.has_member(member_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
        if project.checked_out_by_id == member_id:
            raise _conflict("This member has the project checked out")

        member = next(m for m in project.members if m.id == member_id)
        result = await session.execute(
            delete(project_members).where(
                project_members.c.project_id == project_id,
                project_members.c.user_id == member_id,
            )
        )
        if result.rowcount != 1:
            await session.rollback()
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

        ActivityService.append(session, project_id, requester.id, "member-removed", f"Removed {member.username}")
        await ProjectService._commit_or_discard(session, [])
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def transfer_ownership(session: AsyncSession, requester: User, project_id: str, new_owner_id: str) -> Project:
        """
        Hand ownership to an existing member. The old owner stays a member.

        Raises:
            HTTPException: 404 unknown project/user, 403 requester not owner, 409 new owner not a member
        """
        project = await ProjectService.require_project(session, project_id)
        if project.owner_id != requester.id:
            raise _forbidden("Only the project owner can transfer ownership")
        new_owner = await UserService.require_user(session, new_owner_id)
        if new_owner.id == project.owner_id:
            raise _conflict("User already owns this project")
        if not project.has_member(new_owner.id):
            raise _conflict("Ownership can only be transferred to a project member")

        result = await session.execute(
            update(Project)
            .where(Project.id == project_id, Project.owner_id == requester.id)
            .values(owner_id=new_owner.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await session.rollback()
            raise _forbidden("Only the project owner can transfer ownership")

        ActivityService.append(
            session, project_id, requester.id, "ownership-transferred", f"Transferred ownership to {new_owner.username}"
        )
        await ProjectService._commit_or_discard(session, [])
        logger.info("Project %s ownership moved from %s to %s", project_id, requester.id, new_owner.id)
        return await ProjectService.get_project(session, project_id)

    @staticmethod
    async def record_download(session: AsyncSession, project_id: str) -> int:
        """Increment the download counter atomically and return the new value."""
        result = await session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(downloads=Project.downloads + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await session.rollback()
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
        await session.commit()

        stmt = select(Project.downloads).where(Project.id == project_id)
        return (await session.execute(stmt)).scalar_one()

    @staticmethod
    async def get_file(session: AsyncSession, project_id: str, file_id: str) -> ProjectFile:
        stmt = select(ProjectFile).where(ProjectFile.id == file_id, ProjectFile.project_id == project_id)
        project_file = (await session.execute(stmt)).scalars().first()
        if project_file is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
        return project_file

    @staticmethod
    async def list_projects(session: AsyncSession) -> List[Project]:
        stmt = (
            select(Project)
            .options(selectinload(Project.owner), selectinload(Project.checked_out_by))
            .order_by(Project.created_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
