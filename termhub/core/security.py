"""Security utilities for password hashing and access token handling"""

import secrets
from typing import Optional
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from termhub.core.config import settings

# Password context for bcrypt hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Raised when an access token cannot be decoded or has expired."""


# --- Password Hashing (bcrypt) ---
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# --- Access tokens (signed JWT) ---
def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    """
    Create a signed access token for a user.
    Args:
        user_id: Id of the authenticated user, stored in the `sub` claim
        expires_minutes: Lifetime override, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    Returns:
        str: Encoded JWT
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Decode an access token and return the user id it was issued for.
    Args:
        token: Encoded JWT from the Authorization header
    Returns:
        str: The user id in the `sub` claim
    Raises:
        TokenError: If the token is malformed, tampered with or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e

    subject = payload.get("sub")
    if not subject:
        raise TokenError("Invalid token")
    return subject


def generate_stored_filename(original_name: str) -> str:
    """
    Generate a collision-free name for an uploaded file, keeping its extension.
    Returns:
        str: Random hex name plus the original suffix
    """
    suffix = ""
    if "." in original_name:
        suffix = "." + original_name.rsplit(".", 1)[1].lower()[:16]
    return f"{secrets.token_hex(16)}{suffix}"
