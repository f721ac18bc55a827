from .user import UniqueConstraintViolation, UserRepository

__all__ = ["UniqueConstraintViolation", "UserRepository"]
