from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.db.session import Base
from app.utils.clock import as_utc
import enum
from datetime import datetime


class InviteStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    expired = "expired"
    cancelled = "cancelled"


class WorkspaceInvite(Base):
    __tablename__ = "workspace_invites"

    id = Column(String(36), primary_key=True)
    workspace_id = Column(String(36), ForeignKey("workspaces.id"), nullable=False, index=True)
    email = Column(String(320), nullable=False, index=True)
    role_key = Column(String(100), nullable=False)
    invited_by = Column(String(36), nullable=False)
    # SHA-256 hex digest of the raw token; the raw token is never stored
    token = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(String(16), nullable=False, server_default=InviteStatus.pending.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def is_expired(self, now: datetime) -> bool:
        """Check if the invite has expired as of ``now``."""
        return as_utc(self.expires_at) <= as_utc(now)

    def is_pending(self) -> bool:
        return self.status == InviteStatus.pending.value
