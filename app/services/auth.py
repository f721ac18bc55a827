"""
Account flows: register, login, profile, and two-phase password reset.

Every public AuthService method is a flow boundary: expected failures leave as
one of the AuthServiceError subclasses below; anything else is logged with its
traceback and re-raised as InternalServiceError.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar
from urllib.parse import urlencode

from app.core.security import (
    CredentialManager,
    TokenError,
    TokenExpired,
    TokenService,
    TokenServiceConfigError,
)
from app.repositories.user import UniqueConstraintViolation, UserRepository
from app.schemas.auth import UserProfile
from app.services.mailer import Mailer

logger = logging.getLogger(__name__)

RESET_MAIL_SUBJECT = "Password Reset Request"
RESET_PATH = "/reset-password"

F = TypeVar("F", bound=Callable[..., Any])


class AuthServiceError(Exception):
    """Base for failures that are safe to show to the caller."""

    status_code = 400
    default_message = "Request failed."
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InputValidationError(AuthServiceError):
    default_message = "Invalid input."


class DuplicateUserError(AuthServiceError):
    default_message = "Username or email already exists."


class InvalidCredentialsError(AuthServiceError):
    default_message = "Invalid username or password."


class UnauthorizedError(AuthServiceError):
    status_code = 401
    default_message = "Not authenticated."
    headers = {"WWW-Authenticate": "Bearer"}


class InvalidTokenError(AuthServiceError):
    status_code = 401
    default_message = "Invalid token."
    headers = {"WWW-Authenticate": "Bearer"}


class TokenExpiredError(AuthServiceError):
    default_message = "Token expired."


class EmailNotFoundError(AuthServiceError):
    status_code = 404
    default_message = "Email not found."


class UserNotFoundError(AuthServiceError):
    status_code = 404
    default_message = "User not found."


class InternalServiceError(AuthServiceError):
    status_code = 500
    default_message = "Internal server error."


def flow_boundary(name: str) -> Callable[[F], F]:
    """Map unexpected exceptions raised inside a flow to InternalServiceError."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except AuthServiceError:
                raise
            except Exception as e:
                logger.exception("Unexpected error during %s", name)
                raise InternalServiceError() from e

        return wrapper  # type: ignore[return-value]

    return decorator


class AuthService:
    """
    The account flows over injected collaborators.

    tokens may be None for callers that only register users (the admin CLI);
    flows that issue or verify tokens then fail with InternalServiceError.
    """

    def __init__(
        self,
        users: UserRepository,
        credentials: CredentialManager,
        tokens: TokenService | None,
        mailer: Mailer,
        frontend_url: str,
    ) -> None:
        self._users = users
        self._credentials = credentials
        self._tokens = tokens
        self._mailer = mailer
        self._frontend_url = frontend_url.rstrip("/")

    def _require_tokens(self) -> TokenService:
        if self._tokens is None:
            raise TokenServiceConfigError("JWT_SECRET must be set to sign tokens.")
        return self._tokens

    def build_reset_link(self, token: str) -> str:
        return f"{self._frontend_url}{RESET_PATH}?{urlencode({'token': token})}"

    @flow_boundary("registration")
    def register(self, username: str, password: str, email: str) -> str:
        """Create a user and return its id. Either field colliding gives DuplicateUserError."""
        password_hash = self._credentials.hash(password)
        try:
            user = self._users.create(
                {"username": username, "password_hash": password_hash, "email": email}
            )
        except UniqueConstraintViolation as e:
            logger.info("Registration rejected: duplicate username or email")
            raise DuplicateUserError() from e
        logger.info("Registered user", extra={"event": "register", "user_id": user.id})
        return user.id

    @flow_boundary("login")
    def login(self, username: str, password: str) -> str:
        """Return a session token; unknown user and wrong password look identical."""
        user = self._users.find_by_username(username)
        if user is None or not self._credentials.verify(password, user.password_hash):
            raise InvalidCredentialsError()
        token = self._require_tokens().issue(user.id)
        logger.info("Login succeeded", extra={"event": "login", "user_id": user.id})
        return token

    @flow_boundary("profile retrieval")
    def get_profile(self, token: str | None) -> UserProfile:
        if not token:
            raise UnauthorizedError()
        try:
            user_id = self._require_tokens().verify(token)
        except TokenExpired as e:
            raise UnauthorizedError("Token expired.") from e
        except TokenError as e:
            raise InvalidTokenError() from e

        user = self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return UserProfile.model_validate(user)

    @flow_boundary("password reset request")
    def request_password_reset(self, email: str) -> None:
        """Mail a reset link to the account owning email. No mail when the email is unknown."""
        user = self._users.find_by_email(email)
        if user is None:
            raise EmailNotFoundError()

        token = self._require_tokens().issue(user.id)
        template_data = {
            "username": user.username,
            "reset_link": self.build_reset_link(token),
        }
        # MailDeliveryError is not caught: it surfaces as InternalServiceError.
        self._mailer.send(user.email, RESET_MAIL_SUBJECT, template_data)
        logger.info("Reset link sent", extra={"event": "reset_request", "user_id": user.id})

    @flow_boundary("password reset confirmation")
    def confirm_password_reset(self, token: str | None, new_password: str) -> None:
        """
        Overwrite the password of the token's subject.

        The token is not consumed: replaying it within its hour sets the password
        again. Any valid token for the user is accepted, session tokens included.
        """
        if not token:
            raise InputValidationError("Token is required.")
        try:
            user_id = self._require_tokens().verify(token)
        except TokenExpired as e:
            raise TokenExpiredError() from e
        except TokenError as e:
            raise InvalidTokenError(status_code=400) from e

        if self._users.find_by_id(user_id) is None:
            raise InvalidTokenError(status_code=400)

        password_hash = self._credentials.hash(new_password)
        if self._users.update(user_id, {"password_hash": password_hash}) is None:
            raise InvalidTokenError(status_code=400)
        logger.info("Password reset", extra={"event": "reset_confirm", "user_id": user_id})
