"""
Wiring of action keys to handlers.

Each handler opens its own database session, runs one service call and
returns a JSON-ready dict. ``build_dispatcher`` is called once per app.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.actions.dispatcher import ActionDispatcher, ActionRegistry
from app.actions.types import ActionContext, ActionKey
from app.core.config import settings
from app.db.session import SessionLocal
from app.schemas.actions import (
    CreateInvitePayload,
    CreateWorkspacePayload,
    InviteTokenPayload,
    UpdateSelfPayload,
)
from app.services.authz_client import create_authz_client
from app.services.invite_service import InviteService
from app.services.user_service import UserService
from app.services.workspace_service import WorkspaceService
from app.utils.clock import utcnow
from app.utils.invite_token import generate_invite_token

logger = logging.getLogger(__name__)


@dataclass
class ActionDependencies:
    """Collaborators shared by all handlers; tests swap in fakes."""

    session_factory: Callable[[], Session] = SessionLocal
    authz_client_factory: Callable[[], object] = create_authz_client
    now: Callable[[], datetime] = utcnow
    invite_expires_in_days: int = field(default_factory=lambda: settings.INVITE_EXPIRES_IN_DAYS)
    invite_token_bytes: int = field(default_factory=lambda: settings.INVITE_TOKEN_BYTES)

    def __post_init__(self):
        self._authz_client = None
        self._lock = threading.Lock()

    def authz_client(self):
        """Create the authz client on first use and reuse it afterwards."""
        with self._lock:
            if self._authz_client is None:
                self._authz_client = self.authz_client_factory()
            return self._authz_client

    def close(self) -> None:
        """Close the cached authz client, if one was created."""
        with self._lock:
            client, self._authz_client = self._authz_client, None
        if client is not None and hasattr(client, "close"):
            client.close()

    def new_invite_token(self):
        return generate_invite_token(self.invite_token_bytes)


def build_dispatcher(deps: Optional[ActionDependencies] = None) -> ActionDispatcher:
    deps = deps or ActionDependencies()
    registry = ActionRegistry()

    def invite_service(db: Session) -> InviteService:
        return InviteService(
            db,
            deps.authz_client(),
            now=deps.now,
            token_factory=deps.new_invite_token,
            expires_in_days=deps.invite_expires_in_days,
        )

    def ping(payload, ctx: ActionContext):
        return {"pong": True}

    def read_self(payload, ctx: ActionContext):
        with deps.session_factory() as db:
            return UserService(db).read_self(ctx)

    def update_self(payload: UpdateSelfPayload, ctx: ActionContext):
        with deps.session_factory() as db:
            return UserService(db).update_self(payload.display_name, ctx)

    def get_or_create_me(payload, ctx: ActionContext):
        with deps.session_factory() as db:
            return UserService(db).get_or_create_me(ctx)

    def read_current_workspace(payload, ctx: ActionContext):
        with deps.session_factory() as db:
            return WorkspaceService(db, deps.authz_client()).read_current(ctx)

    def ensure_member(payload, ctx: ActionContext):
        with deps.session_factory() as db:
            return WorkspaceService(db).ensure_member(ctx)

    def list_workspaces(payload, ctx: ActionContext):
        with deps.session_factory() as db:
            return WorkspaceService(db).list_for_user(ctx)

    def create_workspace(payload: CreateWorkspacePayload, ctx: ActionContext):
        with deps.session_factory() as db:
            service = WorkspaceService(db, deps.authz_client())
            return service.create_workspace(payload.name, payload.slug, ctx)

    def list_members(payload, ctx: ActionContext):
        with deps.session_factory() as db:
            return WorkspaceService(db, deps.authz_client()).list_members(ctx)

    def create_invite(payload: CreateInvitePayload, ctx: ActionContext):
        with deps.session_factory() as db:
            return invite_service(db).create(payload.email, payload.role_key, ctx)

    def resolve_invite(payload: InviteTokenPayload, ctx: ActionContext):
        with deps.session_factory() as db:
            return invite_service(db).resolve(payload.token)

    def accept_invite(payload: InviteTokenPayload, ctx: ActionContext):
        with deps.session_factory() as db:
            return invite_service(db).accept(payload.token, ctx)

    registry.register(ActionKey.PING, ping)
    registry.register(ActionKey.USER_READ_SELF, read_self)
    registry.register(ActionKey.USER_UPDATE_SELF, update_self)
    registry.register(ActionKey.ME_GET_OR_CREATE, get_or_create_me)
    registry.register(ActionKey.WORKSPACE_READ_CURRENT, read_current_workspace)
    registry.register(ActionKey.WORKSPACE_MEMBER_ENSURE, ensure_member)
    registry.register(ActionKey.WORKSPACES_LIST_FOR_USER, list_workspaces)
    registry.register(ActionKey.WORKSPACES_CREATE, create_workspace)
    registry.register(ActionKey.WORKSPACE_MEMBERS_LIST, list_members)
    registry.register(ActionKey.INVITES_CREATE, create_invite)
    registry.register(ActionKey.INVITES_RESOLVE, resolve_invite)
    registry.register(ActionKey.INVITES_ACCEPT, accept_invite)

    dispatcher = registry.freeze()
    logger.info("Registered %d accounts actions", len(dispatcher.keys))
    return dispatcher
