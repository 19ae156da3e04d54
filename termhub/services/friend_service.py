"""Service for friend requests and the symmetric friendship relation"""
import logging
from uuid import uuid4

from fastapi import HTTPException, status
from sqlalchemy import and_, delete, insert, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from termhub.models.user import FriendRequest, User, friendships
from termhub.services.user_service import UserService

logger = logging.getLogger(__name__)


async def are_friends(session: AsyncSession, user_id: str, other_id: str) -> bool:
    stmt = select(friendships.c.user_id).where(
        friendships.c.user_id == user_id,
        friendships.c.friend_id == other_id,
    )
    return (await session.execute(stmt)).first() is not None


async def _get_request(session: AsyncSession, requester_id: str, recipient_id: str) -> FriendRequest | None:
    stmt = select(FriendRequest).where(
        FriendRequest.requester_id == requester_id,
        FriendRequest.recipient_id == recipient_id,
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def _befriend(session: AsyncSession, user_id: str, other_id: str) -> None:
    """Insert both directions of the friendship and drop any pending requests between the pair."""
    await session.execute(
        insert(friendships),
        [
            {"user_id": user_id, "friend_id": other_id},
            {"user_id": other_id, "friend_id": user_id},
        ],
    )
    await session.execute(
        delete(FriendRequest).where(
            or_(
                and_(FriendRequest.requester_id == user_id, FriendRequest.recipient_id == other_id),
                and_(FriendRequest.requester_id == other_id, FriendRequest.recipient_id == user_id),
            )
        )
    )


async def send_friend_request(session: AsyncSession, requester: User, target_id: str) -> str:
    """
    Send a friend request from requester to target.

    A request to someone who already asked the requester is accepted on the spot.

    Returns:
        str: "pending" or "accepted"
    Raises:
        HTTPException: 400 for self-requests, 404 unknown target, 409 already friends or already pending
    """
    if target_id == requester.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot befriend yourself")
    target = await UserService.require_user(session, target_id)

    if await are_friends(session, requester.id, target.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already friends")
    if await _get_request(session, requester.id, target.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Friend request already pending")

    if await _get_request(session, target.id, requester.id):
        await _befriend(session, requester.id, target.id)
        await session.commit()
        logger.info("Users %s and %s are now friends", requester.id, target.id)
        return "accepted"

    session.add(FriendRequest(id=str(uuid4()), requester_id=requester.id, recipient_id=target.id))
    await session.commit()
    return "pending"


async def accept_friend_request(session: AsyncSession, recipient: User, requester_id: str) -> None:
    """
    Accept a pending request sent by requester_id to recipient.

    Raises:
        HTTPException: If there is no such pending request (404)
    """
    if await _get_request(session, requester_id, recipient.id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Friend request not found")
    await _befriend(session, recipient.id, requester_id)
    await session.commit()
    logger.info("Users %s and %s are now friends", recipient.id, requester_id)


async def decline_friend_request(session: AsyncSession, recipient: User, requester_id: str) -> None:
    request = await _get_request(session, requester_id, recipient.id)
    if request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Friend request not found")
    await session.delete(request)
    await session.commit()


async def remove_friend(session: AsyncSession, user: User, friend_id: str) -> None:
    """Remove both directions of a friendship. Existing project memberships are kept."""
    if not await are_friends(session, user.id, friend_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Friend not found")
    await session.execute(
        delete(friendships).where(
            or_(
                and_(friendships.c.user_id == user.id, friendships.c.friend_id == friend_id),
                and_(friendships.c.user_id == friend_id, friendships.c.friend_id == user.id),
            )
        )
    )
    await session.commit()
