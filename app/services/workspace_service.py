"""
Workspace Service Module.
Handles workspace creation (including the owner role grant), membership and listing.
"""
import logging
import uuid
from typing import Any, Callable, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.actions.types import ActionContext, ActionKey
from app.core.errors import (
    BadGatewayError,
    ConflictError,
    ForbiddenError,
    MissingContextError,
    NotFoundError,
    UnauthorizedError,
    TRANSIENT_GATEWAY_ERRORS,
)
from app.db.session import is_unique_violation
from app.models.workspace import Workspace
from app.repositories import WorkspaceRepository, WorkspaceMemberRepository
from app.services.role_resolver import (
    WorkspaceRole,
    highest_role,
    resolve_workspace_role,
)
from app.utils.clock import to_iso

logger = logging.getLogger(__name__)

DEFAULT_PLAN_TYPE = "free"
SLUG_UNIQUE_CONSTRAINTS = ("workspaces_slug_unique", "workspaces_slug_unique_idx")


def require_user(ctx: ActionContext) -> str:
    if not ctx.user_id:
        raise UnauthorizedError("Missing userId in auth context")
    return ctx.user_id


def require_workspace(ctx: ActionContext) -> str:
    if not ctx.workspace_id:
        raise MissingContextError("Missing workspaceId in action context")
    return ctx.workspace_id


def workspace_summary(workspace: Workspace) -> Dict[str, Any]:
    return {
        "id": workspace.id,
        "name": workspace.name,
        "slug": workspace.slug,
        "planType": workspace.plan_type,
    }


class WorkspaceService:
    """Service for workspace operations."""

    def __init__(
        self,
        db: Session,
        authz_client=None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.db = db
        self.authz_client = authz_client
        self.id_factory = id_factory
        self.workspaces = WorkspaceRepository(db)
        self.members = WorkspaceMemberRepository(db)

    def create_workspace(self, name: str, slug: str, ctx: ActionContext) -> Dict[str, Any]:
        """
        Create a workspace, make the caller its active member and grant the owner role.

        The rows are committed before the authz call. If the role grant fails,
        the rows are deleted again (best effort) and BadGatewayError is raised,
        so no workspace survives without an owner grant.

        Raises:
            UnauthorizedError: If the caller is unknown
            ConflictError: If the slug is taken (no role call is made)
            BadGatewayError: If the owner role could not be assigned
        """
        user_id = require_user(ctx)
        workspace_id = self.id_factory()

        try:
            self.workspaces.create(
                Workspace(
                    id=workspace_id,
                    name=name,
                    slug=slug,
                    created_by=user_id,
                    plan_type=DEFAULT_PLAN_TYPE,
                )
            )
            self.members.add_active(workspace_id, user_id)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_unique_violation(exc, SLUG_UNIQUE_CONSTRAINTS, columns=("workspaces.slug",)):
                raise ConflictError("Workspace slug already exists") from exc
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        try:
            self.authz_client.assign_role(user_id, workspace_id, WorkspaceRole.OWNER.value)
        except Exception as exc:
            logger.error(
                "Failed to assign workspace_owner role (request_id=%s workspace_id=%s user_id=%s): %s",
                ctx.request_id,
                workspace_id,
                user_id,
                exc,
            )
            self._delete_created_workspace(workspace_id, ctx)
            raise BadGatewayError("Failed to assign workspace_owner role") from exc

        return {
            "id": workspace_id,
            "name": name,
            "slug": slug,
            "planType": DEFAULT_PLAN_TYPE,
            "createdBy": user_id,
        }

    def _delete_created_workspace(self, workspace_id: str, ctx: ActionContext) -> None:
        try:
            self.members.delete_by_workspace(workspace_id)
            self.workspaces.delete_by_id(workspace_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Cleanup failed after authz role assignment failure (request_id=%s workspace_id=%s)",
                ctx.request_id,
                workspace_id,
            )

    def list_for_user(self, ctx: ActionContext) -> Dict[str, List[Dict[str, Any]]]:
        user_id = require_user(ctx)
        workspaces = self.workspaces.get_active_for_user(user_id)
        return {"workspaces": [workspace_summary(w) for w in workspaces]}

    def read_current(self, ctx: ActionContext) -> Dict[str, Any]:
        """Return the context workspace with the caller's effective role."""
        workspace_id = require_workspace(ctx)
        workspace = self.workspaces.get_by_id(workspace_id)
        if workspace is None:
            raise NotFoundError("workspace", workspace_id)

        result = workspace_summary(workspace)
        result["createdBy"] = workspace.created_by
        result["createdAt"] = to_iso(workspace.created_at)
        if ctx.user_id and self.authz_client is not None:
            role = resolve_workspace_role(self.authz_client, workspace_id, ctx.user_id)
            result["currentUserRole"] = role.value
        return result

    def ensure_member(self, ctx: ActionContext) -> Dict[str, Any]:
        """
        Make sure the caller has a membership row in the context workspace.

        Returns:
            {"created": bool, "status": str}
        """
        workspace_id = require_workspace(ctx)
        user_id = require_user(ctx)

        existing = self.members.get_by_workspace_and_user(workspace_id, user_id)
        if existing:
            return {"created": False, "status": existing.status}
        if self.workspaces.get_by_id(workspace_id) is None:
            raise NotFoundError("workspace", workspace_id)

        try:
            member = self.members.add_active(workspace_id, user_id)
            status = member.status
            self.db.commit()
        except IntegrityError:
            # Another request inserted the same (workspace, user) row first
            self.db.rollback()
            existing = self.members.get_by_workspace_and_user(workspace_id, user_id)
            if existing is None:
                raise
            return {"created": False, "status": existing.status}
        return {"created": True, "status": status}

    def list_members(self, ctx: ActionContext) -> Dict[str, List[Dict[str, Any]]]:
        """
        List members of the context workspace with their role keys.

        Requires the list permission from authz. If role lookup is transiently
        unavailable every member is reported with the fallback role.
        """
        user_id = require_user(ctx)
        workspace_id = require_workspace(ctx)

        allowed = self.authz_client.check_permission(
            user_id, workspace_id, ActionKey.WORKSPACE_MEMBERS_LIST
        )
        if not allowed:
            raise ForbiddenError("You do not have permission to list workspace members")

        rows = self.members.get_members_with_users(workspace_id)
        user_ids = [user.id for _member, user in rows]

        roles_by_user: Dict[str, List[str]] = {}
        try:
            assignments = self.authz_client.list_roles_for_workspace(workspace_id, user_ids)
        except TRANSIENT_GATEWAY_ERRORS as exc:
            logger.warning(
                "Failed to list workspace roles, using fallback role "
                "(request_id=%s workspace_id=%s error_code=%s)",
                ctx.request_id,
                workspace_id,
                exc.code,
            )
            assignments = []
        for assignment in assignments:
            roles_by_user.setdefault(assignment.user_id, []).append(assignment.role_key)

        return {
            "members": [
                {
                    "userId": user.id,
                    "email": user.email,
                    "displayName": user.display_name,
                    "avatarUrl": user.avatar_url,
                    "status": member.status,
                    "joinedAt": to_iso(member.joined_at),
                    "roleKey": highest_role(roles_by_user.get(user.id, [])).value,
                }
                for member, user in rows
            ]
        }


