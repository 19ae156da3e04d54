"""User profile and friendship endpoints"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from termhub.core.database import get_db
from termhub.dependencies.auth import get_current_user
from termhub.models.user import User
from termhub.schemas.common import Envelope, UserSummary
from termhub.schemas.project import ProjectSummary
from termhub.schemas.user import FriendsEnvelope, ProfileEnvelope, UserEnvelope, UserResponse, UserUpdate
from termhub.services import friend_service
from termhub.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _require_self(current_user: User, user_id: str) -> None:
    if current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only manage your own friends")


@router.get("/{user_id}", response_model=ProfileEnvelope)
async def get_profile(
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProfileEnvelope:
    """
    Public profile: user, friends and projects. Pending friend requests are
    only included when viewing your own profile.
    """
    user = await UserService.require_user(session, user_id)
    projects = await UserService.get_projects_for_user(session, user.id)
    pending = []
    if current_user.id == user.id:
        pending = await UserService.get_pending_requests(session, user.id)
    return ProfileEnvelope(
        user=UserResponse.model_validate(user),
        projects=[ProjectSummary.model_validate(p) for p in projects],
        pending_friend_requests=[UserSummary.model_validate(u) for u in pending],
    )


@router.put("/{user_id}", response_model=UserEnvelope)
async def update_profile(
    user_id: str,
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    user = await UserService.update_profile(session, current_user, user_id, data)
    return UserEnvelope(message="Profile updated", user=UserResponse.model_validate(user))


@router.get("/{user_id}/friends", response_model=FriendsEnvelope)
async def list_friends(
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FriendsEnvelope:
    user = await UserService.require_user(session, user_id)
    pending = []
    if current_user.id == user.id:
        pending = await UserService.get_pending_requests(session, user.id)
    return FriendsEnvelope(
        friends=[UserSummary.model_validate(f) for f in user.friends],
        pending_friend_requests=[UserSummary.model_validate(u) for u in pending],
    )


@router.post("/{user_id}/friend-requests", response_model=Envelope, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    user_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> Envelope:
    """Send a friend request from the authenticated user to `user_id`."""
    outcome = await friend_service.send_friend_request(session, current_user, user_id)
    if outcome == "accepted":
        return Envelope(message="Friend request accepted")
    return Envelope(message="Friend request sent")


@router.post("/{user_id}/friend-requests/{requester_id}/accept", response_model=FriendsEnvelope)
async def accept_friend_request(
    user_id: str,
    requester_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FriendsEnvelope:
    _require_self(current_user, user_id)
    await friend_service.accept_friend_request(session, current_user, requester_id)
    return await _friends_payload(session, user_id, "Friend request accepted")


@router.post("/{user_id}/friend-requests/{requester_id}/decline", response_model=FriendsEnvelope)
async def decline_friend_request(
    user_id: str,
    requester_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FriendsEnvelope:
    _require_self(current_user, user_id)
    await friend_service.decline_friend_request(session, current_user, requester_id)
    return await _friends_payload(session, user_id, "Friend request declined")


@router.delete("/{user_id}/friends/{friend_id}", response_model=FriendsEnvelope)
async def remove_friend(
    user_id: str,
    friend_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> FriendsEnvelope:
    _require_self(current_user, user_id)
    await friend_service.remove_friend(session, current_user, friend_id)
    return await _friends_payload(session, user_id, "Friend removed")


async def _friends_payload(session: AsyncSession, user_id: str, message: str) -> FriendsEnvelope:
    user = await UserService.require_user(session, user_id)
    pending = await UserService.get_pending_requests(session, user_id)
    return FriendsEnvelope(
        message=message,
        friends=[UserSummary.model_validate(f) for f in user.friends],
        pending_friend_requests=[UserSummary.model_validate(u) for u in pending],
    )
