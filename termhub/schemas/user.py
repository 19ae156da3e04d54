"""Pydantic schemas for User-related requests and responses"""
from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from termhub.schemas.common import CamelModel, Envelope, UserSummary, split_list
from termhub.schemas.project import ProjectSummary

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"


class SignupRequest(CamelModel):
    """
    Schema for creating a new account.

    Attributes:
        username: 3-30 characters, letters, digits and underscores
        email: Unique email used to sign in
        password: Plain password, hashed before storage
    """

    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class SigninRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(CamelModel):
    """
    Schema for user response.

    Note:
        password_hash is NOT included in response
    """

    id: str
    username: str
    email: str
    role: str
    full_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    website: Optional[str] = None
    languages: List[str] = []
    profile_image: Optional[str] = None
    join_date: datetime
    friends: List[UserSummary] = []


class UserUpdate(CamelModel):
    """Profile edit. Every field is optional, only supplied fields change."""

    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    full_name: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, max_length=2000)
    location: Optional[str] = Field(None, max_length=255)
    company: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=512)
    languages: Optional[List[str]] = None
    profile_image: Optional[str] = Field(None, max_length=512)

    @field_validator("languages", mode="before")
    @classmethod
    def split_languages(cls, value):
        return split_list(value)


class AuthResponse(Envelope):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class UserEnvelope(Envelope):
    user: UserResponse


class ProfileEnvelope(Envelope):
    """Profile page payload: the user, their projects and, for the owner only, pending requests."""

    user: UserResponse
    projects: List[ProjectSummary] = []
    pending_friend_requests: List[UserSummary] = []


class FriendsEnvelope(Envelope):
    friends: List[UserSummary]
    pending_friend_requests: List[UserSummary] = []
