"""SQLAlchemy models"""
from termhub.models.user import User, FriendRequest, friendships
from termhub.models.project import Project, ProjectFile, ProjectType, project_members
from termhub.models.activity import Activity, DiscussionMessage

__all__ = [
    "User",
    "FriendRequest",
    "friendships",
    "Project",
    "ProjectFile",
    "ProjectType",
    "project_members",
    "Activity",
    "DiscussionMessage",
]
