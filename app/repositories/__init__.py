"""Repository layer for database access."""

from app.repositories.user_repository import UserRepository
from app.repositories.workspace_repository import (
    WorkspaceRepository,
    WorkspaceMemberRepository,
)
from app.repositories.invite_repository import InviteRepository

__all__ = [
    "UserRepository",
    "WorkspaceRepository",
    "WorkspaceMemberRepository",
    "InviteRepository",
]
