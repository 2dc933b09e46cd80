"""Service for workspace invite business logic: create, resolve and accept."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.actions.types import ActionContext, ActionKey
from app.core.errors import (
    BadGatewayError,
    ConflictError,
    ForbiddenError,
    GoneError,
    InternalError,
    NotFoundError,
)
from app.models.invite import InviteStatus, WorkspaceInvite
from app.repositories import InviteRepository, UserRepository, WorkspaceMemberRepository
from app.services.workspace_service import require_user, require_workspace
from app.utils.clock import to_iso, utcnow
from app.utils.invite_token import InviteTokenPair, generate_invite_token, hash_invite_token

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN_DAYS = 7


def normalize_email(email: str) -> str:
    return email.strip().lower()


class InviteService:
    """Service for invite-related operations."""

    def __init__(
        self,
        db: Session,
        authz_client=None,
        now: Optional[Callable[[], datetime]] = None,
        token_factory: Optional[Callable[[], InviteTokenPair]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        expires_in_days: int = DEFAULT_EXPIRES_IN_DAYS,
    ):
        self.db = db
        self.authz_client = authz_client
        self.now = now or utcnow
        self.token_factory = token_factory or generate_invite_token
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.expires_in_days = expires_in_days
        self.invites = InviteRepository(db)
        self.users = UserRepository(db)
        self.members = WorkspaceMemberRepository(db)

    def create(self, email: str, role_key: str, ctx: ActionContext) -> Dict[str, Any]:
        """
        Create a pending invite in the context workspace.

        The raw token is returned exactly once; only its hash is stored.

        Raises:
            MissingContextError: If no workspace is in context
            UnauthorizedError: If the caller is unknown
            ForbiddenError: If authz denies the invite permission
        """
        workspace_id = require_workspace(ctx)
        user_id = require_user(ctx)

        if not self.authz_client.check_permission(user_id, workspace_id, ActionKey.INVITES_CREATE):
            raise ForbiddenError("Access denied")

        pair = self.token_factory()
        invite = WorkspaceInvite(
            id=self.id_factory(),
            workspace_id=workspace_id,
            email=normalize_email(email),
            role_key=role_key,
            invited_by=user_id,
            token=pair.token_hash,
            status=InviteStatus.pending.value,
            expires_at=self.now() + timedelta(days=self.expires_in_days),
        )
        try:
            self.invites.create(invite)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            "Workspace invite created (request_id=%s invite_id=%s workspace_id=%s)",
            ctx.request_id,
            invite.id,
            workspace_id,
        )
        return {
            "id": invite.id,
            "workspaceId": invite.workspace_id,
            "email": invite.email,
            "roleKey": invite.role_key,
            "status": InviteStatus.pending.value,
            "expiresAt": to_iso(invite.expires_at),
            "token": pair.token,
        }

    def resolve(self, token: str) -> Dict[str, Any]:
        """
        Describe an invite for display before acceptance.

        A pending invite past its expiry is reported as expired and its stored
        status is moved to expired on a best-effort basis.
        """
        row = self.invites.get_with_workspace_and_inviter(hash_invite_token(token))
        if row is None:
            raise NotFoundError("workspace invite")
        invite, workspace, inviter = row

        status = invite.status
        if invite.is_pending() and invite.is_expired(self.now()):
            status = InviteStatus.expired.value
            self._expire_quietly(invite.id)

        if not workspace.name:
            raise InternalError("Invalid workspace invite state")

        return {
            "id": invite.id,
            "workspaceId": invite.workspace_id,
            "workspaceSlug": workspace.slug,
            "workspaceName": workspace.name,
            "inviterName": inviter.display_name if inviter else None,
            "inviterEmail": inviter.email if inviter else None,
            "inviteeEmail": invite.email,
            "role": invite.role_key,
            "roleKey": invite.role_key,
            "status": status,
            "expiresAt": to_iso(invite.expires_at),
            "createdAt": to_iso(invite.created_at),
        }

    def _expire_quietly(self, invite_id: str) -> None:
        try:
            self.invites.transition_status(invite_id, InviteStatus.expired)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Failed to mark invite %s as expired", invite_id, exc_info=True)

    def accept(self, token: str, ctx: ActionContext) -> Dict[str, Any]:
        """
        Accept an invite for the authenticated user.

        Membership insert and the pending -> accepted transition commit in one
        transaction; only one caller can win the transition. The role is then
        granted through authz. If that fails the invite goes back to pending,
        a membership created by this call is removed and BadGatewayError is raised.

        Raises:
            UnauthorizedError: If the caller is unknown
            NotFoundError: If the token matches no invite, or the caller has no user row
            GoneError: If the invite is expired or cancelled
            ConflictError: If the invite is not pending or was processed concurrently
            ForbiddenError: If the invite email does not match the caller
            BadGatewayError: If the role could not be assigned
        """
        user_id = require_user(ctx)

        invite = self.invites.get_by_token_hash(hash_invite_token(token))
        if invite is None:
            raise NotFoundError("workspace invite")

        if invite.is_pending() and invite.is_expired(self.now()):
            self.invites.transition_status(invite.id, InviteStatus.expired)
            self.db.commit()
            raise GoneError("Invite expired")
        if invite.status == InviteStatus.cancelled.value:
            raise GoneError("Invite cancelled")
        if not invite.is_pending():
            raise ConflictError("Invite is not pending")

        user_email = self.users.get_email(user_id)
        if user_email is None:
            raise NotFoundError("user", user_id)
        if normalize_email(invite.email) != normalize_email(user_email):
            raise ForbiddenError("Invite email does not match authenticated user")

        invite_id = invite.id
        workspace_id = invite.workspace_id
        role_key = invite.role_key

        try:
            membership_created = self.members.get_by_workspace_and_user(workspace_id, user_id) is None
            if membership_created:
                self.members.add_active(workspace_id, user_id)
            if self.invites.transition_status(invite_id, InviteStatus.accepted) == 0:
                self.db.rollback()
                raise ConflictError("Invite already processed")
            self.db.commit()
        except IntegrityError as exc:
            # Concurrent accept inserted the same membership row
            self.db.rollback()
            raise ConflictError("Invite already processed") from exc

        try:
            self.authz_client.assign_role(user_id, workspace_id, role_key)
        except Exception as exc:
            logger.error(
                "Failed to assign role for accepted invite (request_id=%s invite_id=%s "
                "workspace_id=%s user_id=%s): %s",
                ctx.request_id,
                invite_id,
                workspace_id,
                user_id,
                exc,
            )
            self._undo_accept(invite_id, workspace_id, user_id, membership_created, ctx)
            raise BadGatewayError("Failed to assign role via authz service") from exc

        return {
            "accepted": True,
            "inviteId": invite_id,
            "workspaceId": workspace_id,
            "roleKey": role_key,
            "workspaceMemberCreated": membership_created,
        }

    def _undo_accept(
        self,
        invite_id: str,
        workspace_id: str,
        user_id: str,
        membership_created: bool,
        ctx: ActionContext,
    ) -> None:
        try:
            self.invites.transition_status(
                invite_id, InviteStatus.pending, from_status=InviteStatus.accepted
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Failed to revert invite to pending (request_id=%s invite_id=%s)",
                ctx.request_id,
                invite_id,
            )

        if not membership_created:
            # Membership predates this invite; it stays, without the invited role
            logger.error(
                "Existing membership kept without invited role (request_id=%s workspace_id=%s user_id=%s)",
                ctx.request_id,
                workspace_id,
                user_id,
            )
            return

        try:
            self.members.delete_by_workspace_and_user(workspace_id, user_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Failed to remove membership after role assignment failure "
                "(request_id=%s workspace_id=%s user_id=%s)",
                ctx.request_id,
                workspace_id,
                user_id,
            )
