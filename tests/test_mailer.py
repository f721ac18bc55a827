"""Unit tests for app.services.mailer: rendering, SMTP delivery, and mailer selection."""

import smtplib
import unittest
from unittest.mock import MagicMock, patch

from pydantic import SecretStr

from app.services.mailer import (
    LoggingMailer,
    MailDeliveryError,
    SmtpMailer,
    build_mailer,
    render_password_reset,
)

TEMPLATE_DATA = {
    "username": "alice01",
    "reset_link": "https://app.example.com/reset-password?token=abc.def.ghi",
}


def _settings(**overrides: object) -> MagicMock:
    settings = MagicMock()
    settings.APP_NAME = "Passgate"
    settings.APP_ENV = "prod"
    settings.SMTP_HOST = "smtp.example.com"
    settings.SMTP_PORT = 587
    settings.SMTP_USERNAME = "mailer@example.com"
    settings.SMTP_PASSWORD = SecretStr("smtp-password")
    settings.SMTP_FROM_ADDRESS = "no-reply@example.com"
    settings.SMTP_USE_TLS = True
    settings.SMTP_TIMEOUT_SEC = 5.0
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


class TestRenderPasswordReset(unittest.TestCase):
    def test_bodies_contain_username_and_link(self) -> None:
        text_body, html_body = render_password_reset("Passgate", TEMPLATE_DATA)
        for body in (text_body, html_body):
            self.assertIn("alice01", body)
            self.assertIn(TEMPLATE_DATA["reset_link"], body)
        self.assertIn("1 hour", text_body)

    def test_missing_field_raises(self) -> None:
        with self.assertRaises(MailDeliveryError) as ctx:
            render_password_reset("Passgate", {"username": "alice01"})
        self.assertIn("reset_link", ctx.exception.message)


class TestSmtpMailer(unittest.TestCase):
    @patch("app.services.mailer.smtplib.SMTP")
    def test_sends_with_tls_and_login(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value.__enter__.return_value
        SmtpMailer(_settings()).send("a@x.com", "Password Reset Request", TEMPLATE_DATA)

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=5.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer@example.com", "smtp-password")
        from_address, to_addresses, raw = server.sendmail.call_args.args
        self.assertEqual(from_address, "no-reply@example.com")
        self.assertEqual(to_addresses, ["a@x.com"])
        self.assertIn("Subject: Password Reset Request", raw)
        self.assertIn("To: a@x.com", raw)

    @patch("app.services.mailer.smtplib.SMTP")
    def test_no_tls_no_login_when_not_configured(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value.__enter__.return_value
        settings = _settings(SMTP_USE_TLS=False, SMTP_USERNAME=None, SMTP_PASSWORD=None)
        SmtpMailer(settings).send("a@x.com", "Password Reset Request", TEMPLATE_DATA)
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.sendmail.assert_called_once()

    @patch("app.services.mailer.smtplib.SMTP")
    def test_smtp_error_raises_delivery_error(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value.__enter__.return_value
        server.sendmail.side_effect = smtplib.SMTPRecipientsRefused({"a@x.com": (550, b"no such user")})
        with self.assertRaises(MailDeliveryError):
            SmtpMailer(_settings()).send("a@x.com", "Password Reset Request", TEMPLATE_DATA)
        self.assertEqual(server.sendmail.call_count, 1)

    @patch("app.services.mailer.smtplib.SMTP")
    def test_connection_error_raises_delivery_error(self, mock_smtp: MagicMock) -> None:
        mock_smtp.side_effect = ConnectionRefusedError("refused")
        with self.assertRaises(MailDeliveryError):
            SmtpMailer(_settings()).send("a@x.com", "Password Reset Request", TEMPLATE_DATA)

    @patch("app.services.mailer.smtplib.SMTP")
    def test_unconfigured_host_raises_without_connecting(self, mock_smtp: MagicMock) -> None:
        with self.assertRaises(MailDeliveryError) as ctx:
            SmtpMailer(_settings(SMTP_HOST=None)).send("a@x.com", "s", TEMPLATE_DATA)
        self.assertIn("SMTP_HOST", ctx.exception.message)
        mock_smtp.assert_not_called()


class TestBuildMailer(unittest.TestCase):
    def test_dev_without_host_logs(self) -> None:
        self.assertIsInstance(build_mailer(_settings(APP_ENV="dev", SMTP_HOST=None)), LoggingMailer)

    def test_prod_without_host_still_uses_smtp(self) -> None:
        self.assertIsInstance(build_mailer(_settings(SMTP_HOST=None)), SmtpMailer)

    def test_configured_host_uses_smtp(self) -> None:
        self.assertIsInstance(build_mailer(_settings(APP_ENV="dev")), SmtpMailer)

    def test_logging_mailer_logs_link(self) -> None:
        mailer = LoggingMailer(_settings(APP_ENV="dev", SMTP_HOST=None))
        with self.assertLogs("app.services.mailer", level="WARNING") as logs:
            mailer.send("a@x.com", "Password Reset Request", TEMPLATE_DATA)
        self.assertIn(TEMPLATE_DATA["reset_link"], logs.output[0])


if __name__ == "__main__":
    unittest.main()
