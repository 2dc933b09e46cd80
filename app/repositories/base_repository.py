"""Base repository class with common database operations."""

from typing import Generic, TypeVar, Type, Optional
from sqlalchemy.orm import Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository providing common CRUD operations."""

    def __init__(self, model: Type[T], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: str) -> Optional[T]:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None if not found
        """
        return self.db.query(self.model).filter(self.model.id == id).first()

    def create(self, obj: T) -> T:
        """
        Add a new entity and flush it so constraint violations surface here.

        Args:
            obj: Entity to create

        Returns:
            Created entity
        """
        self.db.add(obj)
        self.db.flush()
        return obj
