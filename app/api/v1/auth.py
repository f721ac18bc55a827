"""Registration, login and password reset endpoints, plus the AuthService dependency."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.repositories.user import UserRepository
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordConfirm,
    ResetPasswordRequest,
)
from app.services.auth import AuthService

router = APIRouter()


def get_auth_service(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> AuthService:
    """Dependency: AuthService bound to this request's DB session and the app-wide components."""
    state = request.app.state
    return AuthService(
        users=UserRepository(db),
        credentials=state.credentials,
        tokens=state.tokens,
        mailer=state.mailer,
        frontend_url=state.settings.FRONTEND_URL,
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: RegisterRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> RegisterResponse:
    """Create an account with a unique username and email."""
    user_id = auth.register(body.username, body.password, body.email)
    return RegisterResponse(user_id=user_id)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> LoginResponse:
    """
    Authenticate with username and password; returns a JWT valid for one hour.
    Include the token in the Authorization header as: Bearer <token>
    """
    token = auth.login(body.username, body.password)
    return LoginResponse(token=token)


@router.post("/reset-password", response_model=MessageResponse)
def request_password_reset(
    body: ResetPasswordRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Email a password reset link to the account's address."""
    auth.request_password_reset(body.email)
    return MessageResponse(message="Reset link sent successfully.")


@router.patch("/reset-password", response_model=MessageResponse)
def confirm_password_reset(
    body: ResetPasswordConfirm,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    token: Annotated[str | None, Query(description="Token from the reset link")] = None,
) -> MessageResponse:
    """Set a new password using the token from the reset link (body or ?token=)."""
    auth.confirm_password_reset(body.token or token, body.new_password)
    return MessageResponse(message="Password reset successfully.")
