"""Core app configuration, database, and security primitives."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.security import CredentialManager, TokenService

__all__ = ["get_settings", "settings", "get_db", "CredentialManager", "TokenService"]
