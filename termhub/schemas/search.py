"""Pydantic schemas for search"""
from datetime import datetime
from typing import List, Literal, Optional

from termhub.schemas.common import CamelModel, Envelope, UserSummary

SearchType = Literal["projects", "users", "tags", "activity"]


class SearchResult(CamelModel):
    """
    One search hit. Project, tag and activity hits carry `project_id`.

    Attributes:
        type: Which search produced the hit
        name: Project name or username
        time: Last activity, join date or entry time
    """

    type: SearchType
    id: str
    name: str
    description: Optional[str] = None
    project_id: Optional[str] = None
    image_url: Optional[str] = None
    user: Optional[UserSummary] = None
    time: Optional[datetime] = None


class SearchEnvelope(Envelope):
    term: str
    type: SearchType
    results: List[SearchResult]
