"""Effective workspace role resolution from authz role assignments."""
import enum
import logging
from typing import Iterable

from app.core.errors import TRANSIENT_GATEWAY_ERRORS

logger = logging.getLogger(__name__)


class WorkspaceRole(str, enum.Enum):
    OWNER = "workspace_owner"
    ADMIN = "workspace_admin"
    MEMBER = "workspace_member"


ROLE_PRIORITY = (WorkspaceRole.OWNER, WorkspaceRole.ADMIN, WorkspaceRole.MEMBER)
FALLBACK_ROLE = WorkspaceRole.MEMBER


def normalize_role(role_key: str) -> WorkspaceRole:
    """Map an external role key onto the closed role set; unknown keys become member."""
    try:
        return WorkspaceRole(role_key)
    except ValueError:
        return WorkspaceRole.MEMBER


def highest_role(role_keys: Iterable[str]) -> WorkspaceRole:
    roles = {normalize_role(key) for key in role_keys}
    for role in ROLE_PRIORITY:
        if role in roles:
            return role
    return FALLBACK_ROLE


def resolve_workspace_role(authz_client, workspace_id: str, user_id: str) -> WorkspaceRole:
    """
    Resolve the user's effective role in a workspace.

    Transient authz failures (timeout or gateway errors) degrade to the member
    role with a warning. Anything else propagates, since it points at
    misconfiguration rather than unavailability.
    """
    try:
        assignments = authz_client.list_roles_for_workspace(workspace_id, [user_id])
    except TRANSIENT_GATEWAY_ERRORS as exc:
        logger.warning(
            "Failed to resolve role from authz, using fallback role "
            "(workspace_id=%s user_id=%s fallback_role=%s error_code=%s)",
            workspace_id,
            user_id,
            FALLBACK_ROLE.value,
            exc.code,
        )
        return FALLBACK_ROLE

    return highest_role(assignment.role_key for assignment in assignments)
