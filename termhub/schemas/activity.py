"""Pydantic schemas for the activity log and discussion board"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from termhub.schemas.common import CamelModel, Envelope, UserSummary


class ActivityResponse(CamelModel):
    id: int
    project_id: str
    user: Optional[UserSummary] = None
    action: str
    message: Optional[str] = None
    created_at: datetime


class DiscussionResponse(CamelModel):
    id: int
    project_id: str
    user: Optional[UserSummary] = None
    message: str
    created_at: datetime


class MessageCreate(CamelModel):
    """
    Body for posting an activity message or a discussion entry.

    Attributes:
        user_id: Optional, must match the authenticated user when given
        message: Message text
    """

    user_id: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=1000)


class ActivityEnvelope(Envelope):
    activity: ActivityResponse


class ActivityListEnvelope(Envelope):
    activity: List[ActivityResponse]


class DiscussionEnvelope(Envelope):
    entry: DiscussionResponse


class DiscussionListEnvelope(Envelope):
    discussion: List[DiscussionResponse]
