from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from app.db.session import Base


class User(Base):
    __tablename__ = "users"

    # Identity is supplied by the upstream identity provider, never generated here.
    id = Column(String(36), primary_key=True)
    email = Column(String(320), nullable=False, index=True)
    display_name = Column(String(200), nullable=True)
    avatar_url = Column(String(2048), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
