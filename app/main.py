"""FastAPI application entrypoint. No business logic; only wiring, middleware and error rendering."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as v1_router
from app.core.config import Settings, settings
from app.core.security import CredentialManager, TokenService, TokenServiceConfigError
from app.schemas.auth import first_validation_message
from app.services.auth import AuthServiceError
from app.services.mailer import build_mailer

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI, app_settings: Settings) -> None:
    """
    Build the process-wide auth components once and attach them to app.state.

    Raises TokenServiceConfigError when JWT_SECRET is missing.
    """
    secret = app_settings.JWT_SECRET.get_secret_value() if app_settings.JWT_SECRET else None
    app.state.settings = app_settings
    app.state.credentials = CredentialManager()
    app.state.tokens = TokenService(secret, algorithm=app_settings.JWT_ALGORITHM)
    app.state.mailer = build_mailer(app_settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        init_app_state(app, settings)
    except TokenServiceConfigError as e:
        logger.critical("Refusing to start: %s", e.message)
        raise
    logger.info(
        "Auth components ready",
        extra={"app_env": settings.APP_ENV, "mailer": type(app.state.mailer).__name__},
    )
    yield


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    headers = exc.headers if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": first_validation_message(list(exc.errors()))},
    )


app.include_router(v1_router, prefix=settings.API_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": f"{settings.APP_NAME} API"}
