"""Request/response schemas for auth and profile endpoints."""

import re
from collections.abc import Sequence
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
# At least one lower, upper, digit and special; only those character classes.
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{8,}$"
)

REGISTER_USERNAME_MIN_LEN = 5
LOGIN_USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 30
PASSWORD_MIN_LEN = 8

# Messages for absent fields, keyed by field alias as sent by clients.
REQUIRED_MESSAGES = {
    "username": "Username is required.",
    "password": "Password is required.",
    "email": "Email is required.",
    "newPassword": "New password is required.",
    "body": "Request body is required.",
}


def first_validation_message(errors: Sequence[Any]) -> str:
    """Human-readable message for the first pydantic error, e.g. 'Email is required.'"""
    if not errors:
        return "Invalid input."
    err = errors[0]
    loc = err.get("loc") or ("",)
    field = str(loc[-1])
    if err.get("type") == "json_invalid":
        return "Malformed JSON."
    if err.get("type") == "missing":
        return REQUIRED_MESSAGES.get(field, f"{field} is required.")
    ctx = err.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    return f"{field}: {err.get('msg', 'invalid value')}"


def _check_username(v: str, min_len: int) -> str:
    if not USERNAME_PATTERN.fullmatch(v):
        raise ValueError("Username must only contain alphanumeric characters.")
    if len(v) < min_len:
        raise ValueError(f"Username must be at least {min_len} characters long.")
    if len(v) > USERNAME_MAX_LEN:
        raise ValueError(f"Username must not exceed {USERNAME_MAX_LEN} characters.")
    return v


def _check_strong_password(v: str, label: str) -> str:
    if len(v) < PASSWORD_MIN_LEN:
        raise ValueError(f"{label} must be at least {PASSWORD_MIN_LEN} characters long.")
    if not PASSWORD_PATTERN.fullmatch(v):
        raise ValueError(
            f"{label} must include at least one uppercase letter, one lowercase letter, "
            "one number, and one special character."
        )
    return v


def _check_email(v: Any, handler: ValidatorFunctionWrapHandler) -> str:
    if isinstance(v, str):
        v = v.strip()
    try:
        return handler(v)
    except ValidationError as e:
        raise ValueError("Email must be a valid email address.") from e


class RegisterRequest(BaseModel):
    """New account: username, password and email."""

    username: str = Field(..., description="Alphanumeric, 5-30 characters")
    password: str = Field(..., description="8+ chars with upper, lower, digit and special")
    email: EmailStr = Field(..., description="Email address used for password reset")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _check_username(v, REGISTER_USERNAME_MIN_LEN)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_strong_password(v, "Password")

    @field_validator("email", mode="wrap")
    @classmethod
    def validate_email(cls, v: Any, handler: ValidatorFunctionWrapHandler) -> str:
        return _check_email(v, handler)


class RegisterResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "User registered successfully."
    user_id: str = Field(..., alias="userId")


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _check_username(v, LOGIN_USERNAME_MIN_LEN)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required.")
        return v


class LoginResponse(BaseModel):
    """JWT returned after successful login; send it as Authorization: Bearer <token>."""

    message: str = "Login successful."
    token: str = Field(..., description="JWT session token (valid for 1 hour)")


class ResetPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="Registered email address")

    @field_validator("email", mode="wrap")
    @classmethod
    def validate_email(cls, v: Any, handler: ValidatorFunctionWrapHandler) -> str:
        return _check_email(v, handler)


class ResetPasswordConfirm(BaseModel):
    """
    New password plus the token from the reset link.

    token may instead arrive as the ?token= query parameter of the reset link.
    """

    model_config = ConfigDict(populate_by_name=True)

    token: str | None = Field(default=None, description="Token received via email")
    new_password: str = Field(..., alias="newPassword", description="New password")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_strong_password(v, "New password")


class UserProfile(BaseModel):
    """Public projection of a user record (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str


class ProfileResponse(BaseModel):
    message: str = "Welcome to your profile!"
    user: UserProfile


class MessageResponse(BaseModel):
    message: str
