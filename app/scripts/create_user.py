"""
Create a user without going through the HTTP API. Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD EMAIL
Example:
  python -m app.scripts.create_user alice01 'Abcdef1!' alice@example.com
"""
import argparse
import logging
import sys

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.database import session_scope
from app.core.security import CredentialManager, TokenService
from app.repositories.user import UserRepository
from app.schemas.auth import RegisterRequest, first_validation_message
from app.services.auth import AuthService, AuthServiceError
from app.services.mailer import build_mailer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Passgate user.")
    parser.add_argument("username", help="Alphanumeric username (5-30 chars)")
    parser.add_argument("password", help="8+ chars with upper, lower, digit and special")
    parser.add_argument("email", help="Email address used for password reset")
    args = parser.parse_args(argv)

    try:
        body = RegisterRequest(username=args.username, password=args.password, email=args.email)
    except ValidationError as e:
        print(first_validation_message(e.errors()), file=sys.stderr)
        return 1

    settings = get_settings()
    # Registration signs no token; JWT_SECRET is optional here.
    secret = settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else ""
    tokens = TokenService(secret, algorithm=settings.JWT_ALGORITHM) if secret.strip() else None

    with session_scope() as db:
        auth = AuthService(
            users=UserRepository(db),
            credentials=CredentialManager(),
            tokens=tokens,
            mailer=build_mailer(settings),
            frontend_url=settings.FRONTEND_URL,
        )
        try:
            user_id = auth.register(body.username, body.password, body.email)
        except AuthServiceError as e:
            print(e.message, file=sys.stderr)
            return 1
    print(f"Created user '{body.username}' with id {user_id}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
