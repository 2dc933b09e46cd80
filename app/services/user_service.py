"""Service for the caller's own user profile."""

import logging
from typing import Any, Dict, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.actions.types import ActionContext
from app.core.errors import NotFoundError, PayloadValidationError, UnauthorizedError
from app.models.user import User
from app.repositories import UserRepository, WorkspaceRepository
from app.services.workspace_service import require_user, workspace_summary

logger = logging.getLogger(__name__)

MAX_EMAIL_LENGTH = 320
MAX_DISPLAY_NAME_LENGTH = 200
MAX_AVATAR_URL_LENGTH = 2048

_email_adapter = TypeAdapter(EmailStr)


def user_profile(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
    }


def _clean_hint(value: Optional[str], max_length: int) -> Optional[str]:
    """Trim a profile hint; drop it if empty or too long."""
    if value is None:
        return None
    value = value.strip()
    if not value or len(value) > max_length:
        return None
    return value


class UserService:
    """Service for user-related operations."""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserRepository(db)
        self.workspaces = WorkspaceRepository(db)

    def read_self(self, ctx: ActionContext) -> Dict[str, Any]:
        user_id = require_user(ctx)
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user_profile(user)

    def update_self(self, display_name: str, ctx: ActionContext) -> Dict[str, Any]:
        """
        Update the caller's display name.

        Raises:
            PayloadValidationError: If the trimmed name is empty or longer than 200 characters
            NotFoundError: If the caller has no user row
        """
        user_id = require_user(ctx)
        display_name = display_name.strip()
        if not display_name:
            raise PayloadValidationError("displayName is required")
        if len(display_name) > MAX_DISPLAY_NAME_LENGTH:
            raise PayloadValidationError(
                f"displayName must be at most {MAX_DISPLAY_NAME_LENGTH} characters"
            )

        try:
            user = self.users.update_display_name(user_id, display_name)
            if user is None:
                raise NotFoundError("user", user_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return user_profile(user)

    def get_or_create_me(self, ctx: ActionContext) -> Dict[str, Any]:
        """
        Upsert the caller from the gateway's profile hints and list their workspaces.

        The email hint is required and must be a valid address. Name and avatar
        hints are optional; invalid ones are ignored rather than rejected.
        """
        user_id = require_user(ctx)
        email = self._require_email_hint(ctx.user.email)
        display_name = _clean_hint(ctx.user.name, MAX_DISPLAY_NAME_LENGTH)
        avatar_url = _clean_hint(ctx.user.avatar_url, MAX_AVATAR_URL_LENGTH)

        try:
            user = self.users.upsert(user_id, email, display_name, avatar_url)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        workspaces = self.workspaces.get_active_for_user(user_id)
        return {
            "user": user_profile(user),
            "workspaces": [workspace_summary(w) for w in workspaces],
        }

    @staticmethod
    def _require_email_hint(email: Optional[str]) -> str:
        email = (email or "").strip()
        if not email or len(email) > MAX_EMAIL_LENGTH:
            raise UnauthorizedError("Missing or invalid user email in auth context")
        try:
            _email_adapter.validate_python(email)
        except ValidationError:
            raise UnauthorizedError("Missing or invalid user email in auth context")
        return email
