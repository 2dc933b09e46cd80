"""Workspace invite repository for database operations."""

from typing import Optional, Tuple
from sqlalchemy.orm import Session

from app.repositories.base_repository import BaseRepository
from app.models.invite import WorkspaceInvite, InviteStatus
from app.models.user import User
from app.models.workspace import Workspace


class InviteRepository(BaseRepository[WorkspaceInvite]):
    """Repository for WorkspaceInvite model operations."""

    def __init__(self, db: Session):
        """
        Initialize InviteRepository.

        Args:
            db: Database session
        """
        super().__init__(WorkspaceInvite, db)

    def get_by_token_hash(self, token_hash: str) -> Optional[WorkspaceInvite]:
        """
        Get invite by hashed token.

        Args:
            token_hash: SHA-256 hex digest of the raw token

        Returns:
            WorkspaceInvite or None if not found
        """
        return (
            self.db.query(WorkspaceInvite)
            .filter(WorkspaceInvite.token == token_hash)
            .first()
        )

    def get_with_workspace_and_inviter(
        self, token_hash: str
    ) -> Optional[Tuple[WorkspaceInvite, Workspace, Optional[User]]]:
        """
        Get invite by hashed token joined with its workspace and inviter.

        The workspace join is inner; the inviter join is outer because the
        inviting user may not have a local user row.

        Args:
            token_hash: SHA-256 hex digest of the raw token

        Returns:
            (invite, workspace, inviter) tuple or None if not found
        """
        return (
            self.db.query(WorkspaceInvite, Workspace, User)
            .join(Workspace, WorkspaceInvite.workspace_id == Workspace.id)
            .outerjoin(User, WorkspaceInvite.invited_by == User.id)
            .filter(WorkspaceInvite.token == token_hash)
            .first()
        )

    def transition_status(
        self,
        invite_id: str,
        to_status: InviteStatus,
        from_status: Optional[InviteStatus] = InviteStatus.pending,
    ) -> int:
        """
        Conditionally move an invite to a new status.

        The ``WHERE status = from_status`` guard makes this an optimistic
        concurrency gate: only one caller can move an invite out of a given
        status.

        Args:
            invite_id: Invite ID
            to_status: Target status
            from_status: Required current status, or None for an unconditional update

        Returns:
            Number of affected rows (0 or 1)
        """
        query = self.db.query(WorkspaceInvite).filter(WorkspaceInvite.id == invite_id)
        if from_status is not None:
            query = query.filter(WorkspaceInvite.status == from_status.value)
        updated = query.update({WorkspaceInvite.status: to_status.value}, synchronize_session=False)
        self.db.flush()
        return updated
