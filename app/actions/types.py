"""Action keys and the per-request action context."""
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


class ActionKey:
    PING = "accounts.ping"
    USER_READ_SELF = "accounts.user.readSelf"
    USER_UPDATE_SELF = "accounts.user.updateSelf"
    WORKSPACE_READ_CURRENT = "accounts.workspace.readCurrent"
    WORKSPACE_MEMBER_ENSURE = "accounts.workspaceMember.ensure"
    ME_GET_OR_CREATE = "accounts.me.getOrCreate"
    WORKSPACES_LIST_FOR_USER = "accounts.workspaces.listForUser"
    WORKSPACES_CREATE = "accounts.workspaces.create"
    WORKSPACE_MEMBERS_LIST = "accounts.workspace_members.listForWorkspace"
    INVITES_CREATE = "accounts.invites.create"
    INVITES_RESOLVE = "accounts.invites.resolve"
    INVITES_ACCEPT = "accounts.invites.accept"


# Actions that run without an X-Workspace-Id header
NON_WORKSPACE_ACTION_KEYS = frozenset(
    {
        ActionKey.ME_GET_OR_CREATE,
        ActionKey.WORKSPACES_LIST_FOR_USER,
        ActionKey.WORKSPACES_CREATE,
        ActionKey.INVITES_RESOLVE,
        ActionKey.INVITES_ACCEPT,
    }
)

# Actions that run without an X-XS-User-Id header
PUBLIC_ACTION_KEYS = frozenset({ActionKey.INVITES_RESOLVE})

# Actions that answer 201 Created
CREATED_ACTION_KEYS = frozenset(
    {
        ActionKey.WORKSPACE_MEMBER_ENSURE,
        ActionKey.WORKSPACES_CREATE,
        ActionKey.INVITES_CREATE,
        ActionKey.INVITES_ACCEPT,
    }
)


@dataclass(frozen=True)
class UserHints:
    """Profile hints forwarded by the gateway; unverified."""

    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class ActionContext:
    """Identity and tenancy envelope built by the boundary layer for each request."""

    workspace_id: Optional[str]
    user_id: Optional[str]
    request_id: str
    user: UserHints = field(default_factory=UserHints)


ActionHandler = Callable[[Any, ActionContext], Any]
