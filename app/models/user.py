"""ORM model for user accounts."""

import uuid

from sqlalchemy import Column, DateTime, String, func

from app.models.base import Base


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    User account for username/password authentication.

    username and email are unique; password_hash always holds a bcrypt hash.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
