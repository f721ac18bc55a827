"""Unit tests for app.core.security: bcrypt credentials and JWT issuance/verification."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from app.core.security import (
    BCRYPT_ROUNDS,
    TOKEN_LIFETIME,
    CredentialManager,
    TokenExpired,
    TokenInvalidSignature,
    TokenMalformed,
    TokenService,
    TokenServiceConfigError,
)
from tests.fakes import TEST_SECRET

# Low cost keeps the suite fast; the production cost is asserted separately.
FAST_ROUNDS = 4


def _clock_at(offset: timedelta):
    """Clock fixed at now + offset (offset may be negative)."""
    instant = datetime.now(UTC) + offset
    return lambda: instant


class TestCredentialManager(unittest.TestCase):
    """hash/verify round trip, salting, and malformed-hash handling."""

    def setUp(self) -> None:
        self.credentials = CredentialManager(rounds=FAST_ROUNDS)

    def test_default_cost_is_ten(self) -> None:
        self.assertEqual(BCRYPT_ROUNDS, 10)
        self.assertEqual(CredentialManager().rounds, 10)
        self.assertTrue(CredentialManager().hash("Abcdef1!").startswith("$2b$10$"))

    def test_hash_verifies_and_is_not_plaintext(self) -> None:
        hashed = self.credentials.hash("Abcdef1!")
        self.assertNotEqual(hashed, "Abcdef1!")
        self.assertNotIn("Abcdef1!", hashed)
        self.assertTrue(self.credentials.verify("Abcdef1!", hashed))

    def test_wrong_password_does_not_verify(self) -> None:
        hashed = self.credentials.hash("Abcdef1!")
        self.assertFalse(self.credentials.verify("Abcdef1?", hashed))
        self.assertFalse(self.credentials.verify("", hashed))

    def test_same_password_gets_distinct_salts(self) -> None:
        first = self.credentials.hash("Abcdef1!")
        second = self.credentials.hash("Abcdef1!")
        self.assertNotEqual(first, second)
        self.assertTrue(self.credentials.verify("Abcdef1!", first))
        self.assertTrue(self.credentials.verify("Abcdef1!", second))

    def test_malformed_hash_returns_false(self) -> None:
        self.assertFalse(self.credentials.verify("Abcdef1!", "not-a-bcrypt-hash"))
        self.assertFalse(self.credentials.verify("Abcdef1!", ""))
        self.assertFalse(self.credentials.verify("Abcdef1!", None))  # type: ignore[arg-type]

    def test_unicode_password(self) -> None:
        hashed = self.credentials.hash("Pässwörd1!")
        self.assertTrue(self.credentials.verify("Pässwörd1!", hashed))
        self.assertFalse(self.credentials.verify("Passwort1!", hashed))

    def test_passwords_longer_than_72_bytes_are_truncated_consistently(self) -> None:
        long_password = "Aa1!" * 30
        hashed = self.credentials.hash(long_password)
        self.assertTrue(self.credentials.verify(long_password, hashed))


class TestTokenServiceConfig(unittest.TestCase):
    """A missing signing secret is a construction-time error."""

    def test_none_secret_raises(self) -> None:
        with self.assertRaises(TokenServiceConfigError) as ctx:
            TokenService(None)
        self.assertIn("JWT_SECRET", ctx.exception.message)

    def test_blank_secret_raises(self) -> None:
        with self.assertRaises(TokenServiceConfigError):
            TokenService("   ")


class TestTokenIssueVerify(unittest.TestCase):
    """issue() produces a three-part HS256 JWT with id/iat/exp; verify() returns the subject."""

    def setUp(self) -> None:
        self.tokens = TokenService(TEST_SECRET)

    def test_round_trip_returns_subject(self) -> None:
        token = self.tokens.issue("user-123")
        self.assertEqual(self.tokens.verify(token), "user-123")

    def test_token_shape_and_claims(self) -> None:
        token = self.tokens.issue("user-123")
        self.assertEqual(len(token.split(".")), 3)
        claims = jwt.decode(token, TEST_SECRET, algorithms=["HS256"])
        self.assertEqual(set(claims), {"id", "iat", "exp"})
        self.assertEqual(claims["id"], "user-123")
        self.assertEqual(claims["exp"] - claims["iat"], int(TOKEN_LIFETIME.total_seconds()))
        self.assertEqual(jwt.get_unverified_header(token)["alg"], "HS256")

    def test_valid_just_inside_the_hour(self) -> None:
        tokens = TokenService(TEST_SECRET, clock=_clock_at(-timedelta(minutes=59)))
        token = tokens.issue("user-123")
        self.assertEqual(self.tokens.verify(token), "user-123")

    def test_expired_after_one_hour(self) -> None:
        tokens = TokenService(TEST_SECRET, clock=_clock_at(-timedelta(hours=2)))
        token = tokens.issue("user-123")
        with self.assertRaises(TokenExpired):
            self.tokens.verify(token)

    def test_expired_exactly_at_exp(self) -> None:
        tokens = TokenService(TEST_SECRET, clock=_clock_at(-TOKEN_LIFETIME))
        token = tokens.issue("user-123")
        with self.assertRaises(TokenExpired):
            self.tokens.verify(token)

    def test_expiry_follows_the_injected_clock(self) -> None:
        now = [datetime(2026, 1, 1, 12, 0, tzinfo=UTC)]
        tokens = TokenService(TEST_SECRET, clock=lambda: now[0])
        token = tokens.issue("user-123")
        self.assertEqual(tokens.verify(token), "user-123")

        now[0] += TOKEN_LIFETIME - timedelta(seconds=1)
        self.assertEqual(tokens.verify(token), "user-123")

        now[0] += timedelta(seconds=1)
        with self.assertRaises(TokenExpired):
            tokens.verify(token)

    def test_non_numeric_exp_is_malformed(self) -> None:
        token = jwt.encode(
            {"id": "user-123", "iat": datetime.now(UTC), "exp": "later"},
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(TokenMalformed):
            self.tokens.verify(token)

    def test_wrong_secret_is_invalid_signature(self) -> None:
        other = TokenService("another-secret-that-is-at-least-32-bytes")
        token = other.issue("user-123")
        with self.assertRaises(TokenInvalidSignature):
            self.tokens.verify(token)

    def test_tampered_payload_is_invalid_signature(self) -> None:
        token = self.tokens.issue("user-123")
        header, _, signature = token.split(".")
        forged_payload = jwt.encode(
            {"id": "someone-else", "iat": datetime.now(UTC), "exp": datetime.now(UTC) + TOKEN_LIFETIME},
            "attacker-secret-that-is-at-least-32-bytes",
            algorithm="HS256",
        ).split(".")[1]
        with self.assertRaises(TokenInvalidSignature):
            self.tokens.verify(f"{header}.{forged_payload}.{signature}")

    def test_algorithm_mismatch_is_invalid_signature(self) -> None:
        token = jwt.encode(
            {"id": "user-123", "iat": datetime.now(UTC), "exp": datetime.now(UTC) + TOKEN_LIFETIME},
            TEST_SECRET,
            algorithm="HS512",
        )
        with self.assertRaises(TokenInvalidSignature):
            self.tokens.verify(token)

    def test_garbage_is_malformed(self) -> None:
        for bad in ("", "not-a-token", "a.b", "a.b.c"):
            with self.subTest(token=bad):
                with self.assertRaises(TokenMalformed):
                    self.tokens.verify(bad)

    def test_missing_subject_claim_is_malformed(self) -> None:
        token = jwt.encode(
            {"iat": datetime.now(UTC), "exp": datetime.now(UTC) + TOKEN_LIFETIME},
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(TokenMalformed):
            self.tokens.verify(token)

    def test_missing_exp_claim_is_malformed(self) -> None:
        token = jwt.encode({"id": "user-123", "iat": datetime.now(UTC)}, TEST_SECRET, algorithm="HS256")
        with self.assertRaises(TokenMalformed):
            self.tokens.verify(token)

    def test_non_string_subject_is_malformed(self) -> None:
        token = jwt.encode(
            {"id": 42, "iat": datetime.now(UTC), "exp": datetime.now(UTC) + TOKEN_LIFETIME},
            TEST_SECRET,
            algorithm="HS256",
        )
        with self.assertRaises(TokenMalformed):
            self.tokens.verify(token)


if __name__ == "__main__":
    unittest.main()
