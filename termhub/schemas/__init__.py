"""Pydantic schemas for request/response"""
from termhub.schemas.common import Envelope, UserSummary
from termhub.schemas.user import SignupRequest, SigninRequest, UserResponse, UserUpdate
from termhub.schemas.project import ProjectCreate, ProjectUpdate, ProjectResponse, ProjectSummary

__all__ = [
    "Envelope",
    "UserSummary",
    "SignupRequest",
    "SigninRequest",
    "UserResponse",
    "UserUpdate",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "ProjectSummary",
]
