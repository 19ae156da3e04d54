"""Authentication dependencies for FastAPI"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from termhub.core.database import get_db
from termhub.core.security import TokenError, decode_access_token
from termhub.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency resolving the bearer token to the acting user.
    Args:
        credentials: Parsed `Authorization: Bearer <token>` header
        session: Database session
    Returns:
        User: Authenticated user, with friends loaded
    Raises:
        HTTPException: If the token is missing, invalid or its user no longer exists (401)
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user_id = decode_access_token(credentials.credentials)
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    stmt = select(User).options(selectinload(User.friends)).where(User.id == user_id)
    result = await session.execute(stmt)
    user = result.scalars().first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency allowing only users with the admin role."""
    if not user.is_admin:
        logger.warning("Non-admin user %s attempted an admin action", user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator privileges required")
    return user


def ensure_actor(user: User, claimed_id: Optional[str]) -> None:
    """
    Check a client-supplied acting-user id against the authenticated user.

    The id never selects the actor, it is only accepted when it matches.
    Raises:
        HTTPException: If the ids differ (403)
    """
    if claimed_id is not None and claimed_id != user.id:
        logger.warning("User %s sent a request on behalf of %s", user.id, claimed_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Request user does not match the authenticated user",
        )
