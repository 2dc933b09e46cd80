"""Per-action payload schemas. Unknown fields are rejected everywhere."""
import re
from typing import Any, Dict, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.actions.types import ActionKey

SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{1,61})[a-z0-9]$")


class ActionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=False)


class EmptyPayload(ActionPayload):
    pass


class ActionRequest(BaseModel):
    """Envelope posted to the internal actions endpoint."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    action_key: str = Field(..., alias="actionKey")
    payload: Any = None


class UpdateSelfPayload(ActionPayload):
    display_name: str = Field(..., alias="displayName", min_length=1, max_length=1000)


class EnsureWorkspaceMemberPayload(ActionPayload):
    # Accepted but currently ignored; reserved for forward compatibility.
    role: Optional[Literal["member", "admin"]] = None


class CreateWorkspacePayload(ActionPayload):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=3, max_length=63)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Workspace name cannot be empty")
        return v

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        if not SLUG_PATTERN.match(v):
            raise ValueError(
                "Slug can only contain lowercase letters, numbers and hyphens, "
                "and must start and end with a letter or number"
            )
        return v


class CreateInvitePayload(ActionPayload):
    email: EmailStr
    role_key: str = Field(..., alias="roleKey", min_length=1, max_length=100)

    @field_validator("role_key")
    @classmethod
    def validate_role_key(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("roleKey cannot be empty")
        return v


class InviteTokenPayload(ActionPayload):
    token: str = Field(..., min_length=16, max_length=512)


PAYLOAD_SCHEMAS: Dict[str, Type[ActionPayload]] = {
    ActionKey.PING: EmptyPayload,
    ActionKey.USER_READ_SELF: EmptyPayload,
    ActionKey.USER_UPDATE_SELF: UpdateSelfPayload,
    ActionKey.WORKSPACE_READ_CURRENT: EmptyPayload,
    ActionKey.WORKSPACE_MEMBER_ENSURE: EnsureWorkspaceMemberPayload,
    ActionKey.ME_GET_OR_CREATE: EmptyPayload,
    ActionKey.WORKSPACES_LIST_FOR_USER: EmptyPayload,
    ActionKey.WORKSPACES_CREATE: CreateWorkspacePayload,
    ActionKey.WORKSPACE_MEMBERS_LIST: EmptyPayload,
    ActionKey.INVITES_CREATE: CreateInvitePayload,
    ActionKey.INVITES_RESOLVE: InviteTokenPayload,
    ActionKey.INVITES_ACCEPT: InviteTokenPayload,
}
