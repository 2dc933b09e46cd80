from sqlalchemy import Column, String, DateTime, ForeignKey, PrimaryKeyConstraint, UniqueConstraint
from sqlalchemy.sql import func
from app.db.session import Base
import enum


class MemberStatus(enum.Enum):
    active = "active"
    inactive = "inactive"


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(64), nullable=True)
    created_by = Column(String(36), nullable=False)
    plan_type = Column(String(32), nullable=False, server_default="free", default="free")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("slug", name="workspaces_slug_unique"),)


class WorkspaceMember(Base):
    __tablename__ = "workspace_members"

    workspace_id = Column(String(36), ForeignKey("workspaces.id"), nullable=False)
    user_id = Column(String(36), nullable=False)
    status = Column(String(32), nullable=False, server_default="active", default="active")
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # At most one membership row per user per workspace
    __table_args__ = (PrimaryKeyConstraint("workspace_id", "user_id", name="workspace_members_pk"),)
