"""Authenticated user endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.v1.auth import get_auth_service
from app.schemas.auth import ProfileResponse
from app.services.auth import AuthService

router = APIRouter()
security = HTTPBearer(auto_error=False)


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> ProfileResponse:
    """Return id, username and email of the bearer token's user."""
    token = credentials.credentials if credentials is not None else None
    return ProfileResponse(user=auth.get_profile(token))
