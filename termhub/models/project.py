"""Project SQLAlchemy models"""
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from termhub.core.database import Base, utcnow

CHECKED_IN = "checked-in"
CHECKED_OUT = "checked-out"


project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", String(36), ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base):
    """
    Project model: a repository-like entity with files, tags and a checkout lock.

    Attributes:
        id: Primary key, uuid string
        owner_id: Foreign key to the owning User (always also a member)
        checkout_status: "checked-in" or "checked-out"
        checked_out_by_id: Lock holder, set if and only if checked out
        downloads: Download counter
        last_activity: Refreshed on creation, edit and check-in
    """

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint(
            "(checkout_status = 'checked-in' AND checked_out_by_id IS NULL)"
            " OR (checkout_status = 'checked-out' AND checked_out_by_id IS NOT NULL)",
            name="ck_project_checkout_holder",
        ),
    )

    id = Column(String(36), primary_key=True, nullable=False)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    type = Column(String(64), nullable=False)
    version = Column(String(64), nullable=False, default="v1.0.0")
    tags = Column(JSON, nullable=False, default=list)
    image_path = Column(String(1024), nullable=True)

    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    checkout_status = Column(String(16), nullable=False, default=CHECKED_IN)
    checked_out_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    downloads = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_activity = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    owner = relationship("User", foreign_keys=[owner_id])
    checked_out_by = relationship("User", foreign_keys=[checked_out_by_id])
    members = relationship("User", secondary=project_members)
    files = relationship(
        "ProjectFile",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProjectFile.uploaded_at",
    )

    @property
    def image_url(self):
        if not self.image_path:
            return None
        return f"/api/projects/{self.id}/image"

    def has_member(self, user_id: str) -> bool:
        return any(member.id == user_id for member in self.members)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.checkout_status})>"


class ProjectFile(Base):
    """File attached to a project at creation or check-in. Never modified afterwards."""

    __tablename__ = "project_files"

    id = Column(String(36), primary_key=True, nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    original_name = Column(String(255), nullable=False)
    stored_name = Column(String(255), nullable=False)
    mime_type = Column(String(255), nullable=True)
    size = Column(Integer, nullable=False, default=0)
    uploader_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # Relative to settings.UPLOAD_DIR
    path = Column(String(1024), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    project = relationship("Project", back_populates="files")
    uploader = relationship("User")


class ProjectType(Base):
    """Admin-managed list of allowed project types."""

    __tablename__ = "project_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), unique=True, nullable=False)
