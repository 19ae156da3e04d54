"""User SQLAlchemy model"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Table, UniqueConstraint
from sqlalchemy.orm import relationship

from termhub.core.database import Base, utcnow


# Symmetric friendship: every accepted friendship is stored as two rows (a, b) and (b, a)
friendships = Table(
    "friendships",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("friend_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """
    User model representing a TermHub account.

    Attributes:
        id: Primary key, uuid string
        username: Unique handle shown across the site
        email: Unique login email
        password_hash: bcrypt hash of the password
        role: "user" or "admin"
        full_name, bio, location, company, website: Free-form profile fields
        languages: List of programming languages shown on the profile
        profile_image: Optional avatar URL
        join_date: Timestamp of signup
        updated_at: Timestamp of last update
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, nullable=False)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user")

    full_name = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    website = Column(String(512), nullable=True)
    languages = Column(JSON, nullable=False, default=list)
    profile_image = Column(String(512), nullable=True)

    join_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    friends = relationship(
        "User",
        secondary=friendships,
        primaryjoin=id == friendships.c.user_id,
        secondaryjoin=id == friendships.c.friend_id,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class FriendRequest(Base):
    """Pending friend request from requester to recipient. Removed once answered."""

    __tablename__ = "friend_requests"
    __table_args__ = (UniqueConstraint("requester_id", "recipient_id", name="uq_friend_request_pair"),)

    id = Column(String(36), primary_key=True, nullable=False)
    requester_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    requester = relationship("User", foreign_keys=[requester_id])
    recipient = relationship("User", foreign_keys=[recipient_id])
