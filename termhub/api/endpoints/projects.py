"""Project endpoints: lifecycle, checkout/check-in, membership, activity and files"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from termhub.core.database import get_db
from termhub.dependencies.auth import ensure_actor, get_current_user
from termhub.models.user import User
from termhub.schemas.activity import (
    ActivityEnvelope,
    ActivityListEnvelope,
    ActivityResponse,
    DiscussionEnvelope,
    DiscussionListEnvelope,
    DiscussionResponse,
    MessageCreate,
)
from termhub.schemas.common import Envelope
from termhub.schemas.project import (
    ActorRequest,
    CheckinRequest,
    DownloadEnvelope,
    FeedEnvelope,
    MemberAdd,
    MemberRemove,
    OwnershipTransfer,
    ProjectCreate,
    ProjectDetailEnvelope,
    ProjectEnvelope,
    ProjectResponse,
    ProjectUpdate,
)
from termhub.services.activity_service import ActivityService
from termhub.services.file_storage import resolve_path
from termhub.services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


def _validated(model, **values):
    """Validate multipart form values with a pydantic schema, reporting errors like JSON bodies."""
    try:
        return model(**values)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e


def _existing(relative_path: str):
    path = resolve_path(relative_path)
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return path


def _envelope(project, message: Optional[str] = None) -> ProjectEnvelope:
    return ProjectEnvelope(message=message, project=ProjectResponse.model_validate(project))


@router.get("/feed", response_model=FeedEnvelope)
async def list_feed(
    feed_type: str = Query("global", alias="feedType"),
    sort_by: str = Query("recency", alias="sortBy"),
    user_id: Optional[str] = Query(None, alias="userId"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FeedEnvelope:
    """
    Project feed.

    - **feedType**: `local` (yours and your friends' projects) or `global`
    - **sortBy**: `recency` (last activity, `date` is accepted too) or `popularity` (downloads)
    """
    ensure_actor(current_user, user_id)
    sort_key = ActivityService.normalize_sort_key(sort_by)
    items = await ActivityService.list_feed(session, feed_type, sort_key, current_user)
    return FeedEnvelope(feed_type=feed_type, sort_by=sort_key, projects=items)


@router.post("", response_model=ProjectEnvelope, status_code=status.HTTP_201_CREATED)
async def create_project(
    name: str = Form(...),
    description: str = Form(...),
    type: str = Form(...),
    tags: str = Form(""),
    version: str = Form("v1.0.0"),
    owner_id: Optional[str] = Form(None, alias="ownerId"),
    project_image: Optional[UploadFile] = File(None, alias="projectImage"),
    project_files: Optional[List[UploadFile]] = File(None, alias="projectFiles"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    """Create a project (multipart form). The authenticated user becomes its owner."""
    ensure_actor(current_user, owner_id)
    data = _validated(ProjectCreate, name=name, description=description, type=type, tags=tags, version=version)
    project = await ProjectService.create_project(session, current_user, data, project_files, project_image)
    return _envelope(project, "Project created")


@router.get("/{project_id}", response_model=ProjectDetailEnvelope)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectDetailEnvelope:
    project = await ProjectService.require_project(session, project_id)
    activity = await ActivityService.list_for_project(session, project_id)
    discussion = await ActivityService.list_discussion(session, project_id)
    return ProjectDetailEnvelope(
        project=ProjectResponse.model_validate(project),
        activity=[ActivityResponse.model_validate(a) for a in activity],
        discussion=[DiscussionResponse.model_validate(d) for d in discussion],
    )


@router.put("/{project_id}", response_model=ProjectEnvelope)
async def edit_project(
    project_id: str,
    data: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    ensure_actor(current_user, data.requester_id)
    project = await ProjectService.edit_project(session, current_user, project_id, data)
    return _envelope(project, "Project updated")


@router.put("/{project_id}/image", response_model=ProjectEnvelope)
async def replace_image(
    project_id: str,
    project_image: UploadFile = File(..., alias="projectImage"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    """Replace the cover image (owner only)."""
    project = await ProjectService.edit_project(session, current_user, project_id, ProjectUpdate(), image=project_image)
    return _envelope(project, "Project image updated")


@router.delete("/{project_id}", response_model=Envelope)
async def delete_project(
    project_id: str,
    body: Optional[MemberRemove] = Body(None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> Envelope:
    ensure_actor(current_user, body.requester_id if body else None)
    await ProjectService.delete_project(session, current_user, project_id)
    return Envelope(message="Project deleted")


@router.post("/{project_id}/checkout", response_model=ProjectEnvelope)
async def checkout_project(
    project_id: str,
    body: Optional[ActorRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    ensure_actor(current_user, body.user_id if body else None)
    project = await ProjectService.checkout(session, current_user, project_id)
    return _envelope(project, "Project checked out")


@router.post("/{project_id}/checkin", response_model=ProjectEnvelope)
async def checkin_project(
    project_id: str,
    message: str = Form(...),
    version: str = Form(...),
    user_id: Optional[str] = Form(None, alias="userId"),
    project_files: Optional[List[UploadFile]] = File(None, alias="projectFiles"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    """Check the project back in with a message, a new version and optional new files (multipart form)."""
    data = _validated(CheckinRequest, user_id=user_id, message=message, version=version)
    ensure_actor(current_user, data.user_id)
    project = await ProjectService.checkin(session, current_user, project_id, data.message, data.version, project_files)
    return _envelope(project, "Project checked in")


@router.post("/{project_id}/members", response_model=ProjectEnvelope)
async def add_member(
    project_id: str,
    data: MemberAdd,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    ensure_actor(current_user, data.requester_id)
    project = await ProjectService.add_member(session, current_user, project_id, data.friend_id)
    return _envelope(project, "Member added")


@router.delete("/{project_id}/members/{member_id}", response_model=ProjectEnvelope)
async def remove_member(
    project_id: str,
    member_id: str,
    body: Optional[MemberRemove] = Body(None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    ensure_actor(current_user, body.requester_id if body else None)
    project = await ProjectService.remove_member(session, current_user, project_id, member_id)
    return _envelope(project, "Member removed")


@router.post("/{project_id}/transfer-ownership", response_model=ProjectEnvelope)
async def transfer_ownership(
    project_id: str,
    data: OwnershipTransfer,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProjectEnvelope:
    ensure_actor(current_user, data.requester_id)
    project = await ProjectService.transfer_ownership(session, current_user, project_id, data.new_owner_id)
    return _envelope(project, "Ownership transferred")


@router.get("/{project_id}/activity", response_model=ActivityListEnvelope)
async def list_activity(
    project_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ActivityListEnvelope:
    await ProjectService.require_project(session, project_id)
    entries = await ActivityService.list_for_project(session, project_id, limit)
    return ActivityListEnvelope(activity=[ActivityResponse.model_validate(e) for e in entries])


@router.post("/{project_id}/messages", response_model=ActivityEnvelope, status_code=status.HTTP_201_CREATED)
async def post_message(
    project_id: str,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ActivityEnvelope:
    """Post a message to the project's activity log (members only)."""
    ensure_actor(current_user, data.user_id)
    project = await ProjectService.require_project(session, project_id)
    entry = await ActivityService.post_message(session, project, current_user, data.message)
    return ActivityEnvelope(message="Message posted", activity=ActivityResponse.model_validate(entry))


@router.get("/{project_id}/discussion", response_model=DiscussionListEnvelope)
async def list_discussion(
    project_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> DiscussionListEnvelope:
    await ProjectService.require_project(session, project_id)
    entries = await ActivityService.list_discussion(session, project_id)
    return DiscussionListEnvelope(discussion=[DiscussionResponse.model_validate(e) for e in entries])


@router.post("/{project_id}/discussion", response_model=DiscussionEnvelope, status_code=status.HTTP_201_CREATED)
async def post_discussion(
    project_id: str,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> DiscussionEnvelope:
    ensure_actor(current_user, data.user_id)
    await ProjectService.require_project(session, project_id)
    entry = await ActivityService.post_discussion(session, project_id, current_user, data.message)
    return DiscussionEnvelope(entry=DiscussionResponse.model_validate(entry))


@router.post("/{project_id}/download", response_model=DownloadEnvelope)
async def record_download(
    project_id: str,
    session: AsyncSession = Depends(get_db),
) -> DownloadEnvelope:
    """Count a download. Public, like the cover image."""
    downloads = await ProjectService.record_download(session, project_id)
    return DownloadEnvelope(downloads=downloads)


@router.get("/{project_id}/files/{file_id}")
async def download_file(
    project_id: str,
    file_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FileResponse:
    project_file = await ProjectService.get_file(session, project_id, file_id)
    return FileResponse(
        _existing(project_file.path),
        media_type=project_file.mime_type or "application/octet-stream",
        filename=project_file.original_name,
    )


@router.get("/{project_id}/image")
async def get_image(
    project_id: str,
    session: AsyncSession = Depends(get_db),
) -> FileResponse:
    """Cover image. Public so it can be used directly in <img> tags."""
    project = await ProjectService.require_project(session, project_id)
    if not project.image_path:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project has no image")
    return FileResponse(_existing(project.image_path))
