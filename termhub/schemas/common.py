"""Shared pydantic building blocks"""
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel):
    """Every response carries `success` and an optional human readable `message`."""

    success: bool = True
    message: Optional[str] = None


class UserSummary(CamelModel):
    """Compact user reference embedded in projects, activity and friend lists."""

    id: str
    username: str
    full_name: Optional[str] = None
    profile_image: Optional[str] = None


def split_list(value):
    """Accept either a list of strings or a comma separated string."""
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    cleaned = []
    for item in value:
        item = str(item).strip()
        if item and item not in cleaned:
            cleaned.append(item)
    return cleaned
