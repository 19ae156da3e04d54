"""Pydantic schemas for Project"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from termhub.schemas.activity import ActivityResponse, DiscussionResponse
from termhub.schemas.common import CamelModel, Envelope, UserSummary, split_list


class ProjectCreate(CamelModel):
    """
    Validated fields of a new project. Built from the multipart form.

    Attributes:
        name: At least 3 characters
        description: At least 10 characters
        type: Must be one of the admin-managed project types
        tags: List or comma separated string
        version: Free-form version label
    """

    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=5000)
    type: str = Field(..., min_length=1, max_length=64)
    tags: List[str] = []
    version: str = Field("v1.0.0", min_length=1, max_length=64)

    @field_validator("name", "description", "type", "version", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value):
        return split_list(value) or []


class ProjectUpdate(CamelModel):
    """Owner edit. Membership, files and checkout state are not editable here."""

    requester_id: Optional[str] = None
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=5000)
    type: Optional[str] = Field(None, min_length=1, max_length=64)
    tags: Optional[List[str]] = None
    version: Optional[str] = Field(None, min_length=1, max_length=64)

    @field_validator("name", "description", "type", "version", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value):
        return split_list(value)


class CheckinRequest(CamelModel):
    """Validated fields of a check-in. Built from the multipart form."""

    user_id: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=500)
    version: str = Field(..., min_length=1, max_length=64)

    @field_validator("message", "version", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class ActorRequest(CamelModel):
    """Body carrying only an optional acting-user id (checkout, download)."""

    user_id: Optional[str] = None


class MemberAdd(CamelModel):
    requester_id: Optional[str] = None
    friend_id: str = Field(..., min_length=1)


class MemberRemove(CamelModel):
    requester_id: Optional[str] = None


class OwnershipTransfer(CamelModel):
    requester_id: Optional[str] = None
    new_owner_id: str = Field(..., min_length=1)


class ProjectFileResponse(CamelModel):
    id: str
    original_name: str
    mime_type: Optional[str] = None
    size: int
    uploader_id: Optional[str] = None
    uploaded_at: datetime
    path: str


class ProjectSummary(CamelModel):
    id: str
    name: str
    description: str
    type: str
    version: str
    tags: List[str] = []
    image_url: Optional[str] = None
    owner: UserSummary
    checkout_status: Literal["checked-in", "checked-out"]
    checked_out_by: Optional[UserSummary] = None
    downloads: int
    created_at: datetime
    last_activity: datetime


class ProjectResponse(ProjectSummary):
    members: List[UserSummary] = []
    files: List[ProjectFileResponse] = []


class FeedItem(ProjectSummary):
    member_count: int = 0
    latest_activity: Optional[ActivityResponse] = None


class ProjectEnvelope(Envelope):
    project: ProjectResponse


class ProjectDetailEnvelope(Envelope):
    project: ProjectResponse
    activity: List[ActivityResponse] = []
    discussion: List[DiscussionResponse] = []


class ProjectListEnvelope(Envelope):
    projects: List[ProjectSummary]


class FeedEnvelope(Envelope):
    feed_type: Literal["local", "global"]
    sort_by: Literal["recency", "popularity"]
    projects: List[FeedItem]


class DownloadEnvelope(Envelope):
    downloads: int
