"""Credential hashing and bearer-token issuance/verification.

Both components are plain objects built once at startup and injected where
they are needed; neither reads settings on its own.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

# Bcrypt cost (log2 rounds). Fixed; changing it only affects newly hashed passwords.
BCRYPT_ROUNDS = 10
# bcrypt reads at most 72 bytes of input; newer releases raise on longer input.
BCRYPT_MAX_BYTES = 72

# Session and reset tokens share one lifetime.
TOKEN_LIFETIME = timedelta(hours=1)
SUBJECT_CLAIM = "id"
REQUIRED_CLAIMS = (SUBJECT_CLAIM, "iat", "exp")


class TokenServiceConfigError(Exception):
    """Raised at construction when the signing secret is missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenError(Exception):
    """Base class for token verification failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenInvalidSignature(TokenError):
    """Signature does not match the configured secret/algorithm."""


class TokenExpired(TokenError):
    """Token is past its exp claim."""


class TokenMalformed(TokenError):
    """Token cannot be decoded or lacks required claims."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CredentialManager:
    """Salted bcrypt hashing and constant-time verification of passwords."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(plaintext), salt).decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return True iff plaintext matches hashed; False for malformed hashes."""
        try:
            return bcrypt.checkpw(self._encode(plaintext), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False


class TokenService:
    """Issue and verify signed JWTs carrying the subject user id."""

    def __init__(
        self,
        secret: str | None,
        algorithm: str = "HS256",
        lifetime: timedelta = TOKEN_LIFETIME,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if secret is None or not secret.strip():
            raise TokenServiceConfigError("JWT_SECRET must be set to sign tokens.")
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime
        self._clock = clock

    def issue(self, subject_id: str) -> str:
        """Create a token with claims id, iat and exp (iat + lifetime)."""
        now = self._clock()
        payload: dict[str, Any] = {
            SUBJECT_CLAIM: str(subject_id),
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """
        Decode and validate a token; return its claims.

        Raises TokenInvalidSignature, TokenExpired or TokenMalformed. Expiry is
        judged against the injected clock, not the wall clock.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "require": list(REQUIRED_CLAIMS),
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            raise TokenInvalidSignature("Token signature is invalid.") from e
        except jwt.PyJWTError as e:
            raise TokenMalformed(f"Token could not be decoded: {e}") from e

        exp = claims["exp"]
        if isinstance(exp, bool) or not isinstance(exp, int | float):
            raise TokenMalformed("Token exp claim must be a number.")
        if self._clock().timestamp() >= exp:
            raise TokenExpired("Token has expired.")
        return claims

    def verify(self, token: str) -> str:
        """Verify a token and return its subject id."""
        claims = self.decode(token)
        subject = claims.get(SUBJECT_CLAIM)
        if not isinstance(subject, str) or not subject:
            raise TokenMalformed("Token subject is missing or not a string.")
        return subject
