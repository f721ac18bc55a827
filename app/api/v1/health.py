"""Health check endpoint with database connectivity and mail transport status."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.mailer import LoggingMailer

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(request: Request, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    state = request.app.state
    db_status = "connected" if check_db_connected(db) else "disconnected"
    mail_transport = "log" if isinstance(state.mailer, LoggingMailer) else "smtp"

    return HealthResponse(
        status="ok",
        environment=state.settings.APP_ENV,
        database=db_status,
        mail_transport=mail_transport,
    )
