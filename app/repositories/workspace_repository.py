"""Workspace repositories for database operations."""

from typing import Optional, List, Tuple
from sqlalchemy.orm import Session

from app.repositories.base_repository import BaseRepository
from app.models.user import User
from app.models.workspace import Workspace, WorkspaceMember, MemberStatus


class WorkspaceRepository(BaseRepository[Workspace]):
    """Repository for Workspace model operations."""

    def __init__(self, db: Session):
        super().__init__(Workspace, db)

    def get_active_for_user(self, user_id: str) -> List[Workspace]:
        """
        Get all workspaces where the user has an active membership.

        Args:
            user_id: User ID

        Returns:
            List of workspaces
        """
        return (
            self.db.query(Workspace)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .filter(
                WorkspaceMember.user_id == user_id,
                WorkspaceMember.status == MemberStatus.active.value,
            )
            .order_by(Workspace.created_at, Workspace.id)
            .all()
        )

    def delete_by_id(self, workspace_id: str) -> int:
        deleted = (
            self.db.query(Workspace)
            .filter(Workspace.id == workspace_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted


class WorkspaceMemberRepository(BaseRepository[WorkspaceMember]):
    """Repository for WorkspaceMember model operations."""

    def __init__(self, db: Session):
        super().__init__(WorkspaceMember, db)

    def get_by_workspace_and_user(
        self, workspace_id: str, user_id: str
    ) -> Optional[WorkspaceMember]:
        """
        Get membership by its composite key.

        Args:
            workspace_id: Workspace ID
            user_id: User ID

        Returns:
            WorkspaceMember or None if not found
        """
        return (
            self.db.query(WorkspaceMember)
            .filter(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
            .first()
        )

    def add_active(self, workspace_id: str, user_id: str) -> WorkspaceMember:
        return self.create(
            WorkspaceMember(
                workspace_id=workspace_id,
                user_id=user_id,
                status=MemberStatus.active.value,
            )
        )

    def get_members_with_users(self, workspace_id: str) -> List[Tuple[WorkspaceMember, User]]:
        """
        Get workspace members joined with their user records.

        Memberships whose user row is missing are skipped.

        Args:
            workspace_id: Workspace ID

        Returns:
            List of (member, user) tuples
        """
        return (
            self.db.query(WorkspaceMember, User)
            .join(User, WorkspaceMember.user_id == User.id)
            .filter(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.joined_at, WorkspaceMember.user_id)
            .all()
        )

    def delete_by_workspace_and_user(self, workspace_id: str, user_id: str) -> int:
        deleted = (
            self.db.query(WorkspaceMember)
            .filter(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted

    def delete_by_workspace(self, workspace_id: str) -> int:
        deleted = (
            self.db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == workspace_id)
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted
