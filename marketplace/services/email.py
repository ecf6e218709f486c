"""Transactional email: password-reset and verification links."""

import logging
from pathlib import Path

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from marketplace.config import get_settings

logger = logging.getLogger("marketplace.email")

RESEND_API_URL = "https://api.resend.com/emails"
TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates"


class EmailService:
    """Renders action emails and hands them to the Resend HTTP API."""

    def __init__(self, api_key: str, sender: str, app_url: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.sender = sender
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout
        self.templates = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def password_reset_url(self, token: str) -> str:
        return f"{self.app_url}/auth/reset-password/{token}"

    def verification_url(self, token: str) -> str:
        return f"{self.app_url}/auth/verify-email/{token}"

    def send_password_reset_email(self, email: str, token: str) -> None:
        url = self.password_reset_url(token)
        if not self.api_key:
            logger.info("PASSWORD RESET: %s", url)
        html = self._render(
            title="Reset Your Password",
            message=(
                "We received a request to reset your password. Click the button below to choose a new "
                "password. This link will expire in 1 hour."
            ),
            button_text="Reset Password",
            button_url=url,
        )
        self.send_email(email, "Reset your password", html)

    def send_verification_email(self, email: str, token: str) -> None:
        url = self.verification_url(token)
        if not self.api_key:
            logger.info("EMAIL VERIFICATION: %s", url)
        html = self._render(
            title="Verify Your Email Address",
            message=(
                "Welcome! Please verify your email address to complete your account setup. Click the "
                "button below to verify your email. This link will expire in 24 hours."
            ),
            button_text="Verify Email",
            button_url=url,
        )
        self.send_email(email, "Verify your email address", html)

    def send_email(self, to: str, subject: str, html: str) -> None:
        """Deliver one message. Without an API key delivery is skipped; HTTP errors propagate."""
        if not self.api_key:
            logger.warning("Missing RESEND_API_KEY. Skipping email '%s' to %s", subject, to)
            return

        response = httpx.post(
            RESEND_API_URL,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.info("Sent email '%s' to %s", subject, to)

    def _render(self, **context: str) -> str:
        return self.templates.get_template("email/action.html").render(**context)


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get singleton email service instance."""
    global _email_service
    if _email_service is None:
        settings = get_settings()
        _email_service = EmailService(settings.RESEND_API_KEY, settings.EMAIL_FROM, settings.APP_URL)
    return _email_service
