"""User store: lookups, creation and field updates over the users table."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User

# Fields callers may set through create()/update(); id and timestamps are owned by the store.
WRITABLE_FIELDS = frozenset({"username", "email", "password_hash"})
# username is immutable after creation (no rename flow).
UPDATABLE_FIELDS = frozenset({"email", "password_hash"})


class UniqueConstraintViolation(Exception):
    """Raised by create() when the username or email is already taken."""

    def __init__(self, message: str = "Unique constraint violated.") -> None:
        self.message = message
        super().__init__(message)


def _check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unsupported user fields: {', '.join(sorted(unknown))}")


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, user_id: str) -> User | None:
        """Retrieves a User by primary id."""
        return self.session.get(User, user_id)

    def find_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        return self.session.scalars(stmt).one_or_none()

    def find_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        return self.session.scalars(stmt).one_or_none()

    def create(self, fields: dict[str, Any]) -> User:
        """
        Insert and commit a new user.

        Uniqueness is left to the database: a concurrent insert with the same
        username or email fails here with UniqueConstraintViolation.
        """
        _check_fields(fields, WRITABLE_FIELDS)
        user = User(**fields)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise UniqueConstraintViolation() from e
        self.session.refresh(user)
        return user

    def update(self, user_id: str, fields: dict[str, Any]) -> User | None:
        """Overwrite the given fields and commit. Returns None if the user is gone."""
        _check_fields(fields, UPDATABLE_FIELDS)
        user = self.find_by_id(user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise UniqueConstraintViolation() from e
        self.session.refresh(user)
        return user
