"""User repository for database operations."""

from typing import Optional
from sqlalchemy.orm import Session

from app.repositories.base_repository import BaseRepository
from app.models.user import User


class UserRepository(BaseRepository[User]):
    """Repository for User model operations."""

    def __init__(self, db: Session):
        """
        Initialize UserRepository.

        Args:
            db: Database session
        """
        super().__init__(User, db)

    def get_email(self, user_id: str) -> Optional[str]:
        """
        Get only the email of a user.

        Args:
            user_id: User ID

        Returns:
            Email or None if the user does not exist
        """
        row = self.db.query(User.email).filter(User.id == user_id).first()
        return row[0] if row else None

    def upsert(
        self,
        user_id: str,
        email: str,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        """
        Insert the user or refresh its profile.

        Email is always overwritten; display name and avatar only when provided.

        Args:
            user_id: Externally supplied user ID
            email: Email from the identity provider
            display_name: Optional display name hint
            avatar_url: Optional avatar URL hint

        Returns:
            The stored user
        """
        user = self.get_by_id(user_id)
        if user is None:
            return self.create(
                User(id=user_id, email=email, display_name=display_name, avatar_url=avatar_url)
            )

        user.email = email
        if display_name:
            user.display_name = display_name
        if avatar_url:
            user.avatar_url = avatar_url
        self.db.flush()
        return user

    def update_display_name(self, user_id: str, display_name: str) -> Optional[User]:
        user = self.get_by_id(user_id)
        if user is None:
            return None
        user.display_name = display_name
        self.db.flush()
        return user
