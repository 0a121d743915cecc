"""Transactional email notifications via the Resend API.

Security: NEVER log the recipient address or rendered bodies.
"""

from __future__ import annotations

import os
from typing import Any

import requests

from kostly.domain.models import NotificationOutcome
from kostly.notifications.templates import BRAND, render_email
from kostly.observability.correlation import get_correlation_id
from kostly.observability.logging import get_logger
from kostly.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://api.resend.com"
DEFAULT_FROM_EMAIL = "onboarding@resend.dev"

# Never above the email dispatch deadline.
HTTP_TIMEOUT = 10


class EmailProviderError(RuntimeError):
    """Error returned by the email provider (or transport failure)."""

    def __init__(self, message: str, *, name: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.name = name
        self.status_code = status_code


class ResendClient:
    """Thin wrapper around the Resend send-email endpoint."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def send_transactional(
        self,
        *,
        from_: str,
        to: str,
        subject: str,
        html: str,
        text: str,
    ) -> dict[str, Any]:
        """Send one email.

        Returns:
            Decoded response (contains "id").

        Raises:
            EmailProviderError: On HTTP error status or network failure.
        """
        try:
            resp = requests.post(
                f"{self._base_url}/emails",
                json={"from": from_, "to": [to], "subject": subject, "html": html, "text": text},
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise EmailProviderError(f"Resend request failed: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = {}
            raise EmailProviderError(
                str(payload.get("message") or f"HTTP {resp.status_code}"),
                name=payload.get("name"),
                status_code=resp.status_code,
            )

        return resp.json()


def describe_email_error(exc: EmailProviderError) -> str:
    """Human-readable reason for a failed send."""
    message = str(exc)
    if exc.status_code in (401, 403) and "domain" not in message.lower():
        return "Invalid email API key"
    if "domain" in message.lower():
        return "Email sender domain not verified"
    return f"Email send failed: {message}"


class EmailAdapter:
    """Email channel: send(to, type, data) -> NotificationOutcome, never raises."""

    channel = "email"

    def __init__(self, client: ResendClient | None, from_address: str) -> None:
        self._client = client
        self._from_address = from_address

    @classmethod
    def from_env(cls, *, timeout: float = HTTP_TIMEOUT) -> EmailAdapter:
        """Build from environment.

        Env vars:
        - RESEND_API_KEY: API key (adapter unconfigured when missing)
        - RESEND_API_BASE_URL: optional API base URL override
        - EMAIL_FROM / EMAIL_FROM_NAME: sender address and display name
        """
        api_key = os.environ.get("RESEND_API_KEY", "").strip()
        client = None
        if api_key:
            client = ResendClient(
                api_key=api_key,
                base_url=os.environ.get("RESEND_API_BASE_URL", DEFAULT_API_BASE_URL),
                timeout=timeout,
            )
        from_email = os.environ.get("EMAIL_FROM", DEFAULT_FROM_EMAIL)
        from_name = os.environ.get("EMAIL_FROM_NAME", BRAND)
        return cls(client, f"{from_name} <{from_email}>")

    @property
    def configured(self) -> bool:
        return self._client is not None

    def send(
        self,
        to: str | None,
        notification_type: str,
        data: dict[str, Any],
    ) -> NotificationOutcome:
        """Render the template for notification_type and email it."""
        if not self.configured:
            logger.warning("email not configured, skipping send")
            return NotificationOutcome.not_attempted(self.channel, "Email service not configured")

        if not to or "@" not in to:
            return NotificationOutcome.not_attempted(self.channel, "Invalid email address")

        log_ctx = safe_log_context(
            correlationId=get_correlation_id(),
            to_hash=hash_identifier(to.strip().lower()),
            template=notification_type,
            provider="resend",
        )

        try:
            rendered = render_email(notification_type, data)
        except ValueError as exc:
            logger.error("email template render failed", extra={"extra_fields": log_ctx})
            return NotificationOutcome.failed(self.channel, str(exc))

        logger.info("sending email notification", extra={"extra_fields": log_ctx})

        try:
            result = self._client.send_transactional(
                from_=self._from_address,
                to=to.strip(),
                subject=rendered.subject,
                html=rendered.html,
                text=rendered.text,
            )
        except EmailProviderError as exc:
            logger.error(
                "email send failed",
                extra={
                    "extra_fields": {
                        **log_ctx,
                        **safe_log_context(http_status=exc.status_code, error_name=exc.name),
                    }
                },
            )
            return NotificationOutcome.failed(self.channel, describe_email_error(exc))
        except Exception as exc:
            logger.exception(
                "email send crashed",
                extra={"extra_fields": {**log_ctx, "error_type": type(exc).__name__}},
            )
            return NotificationOutcome.failed(self.channel, f"Email send failed: {type(exc).__name__}")

        email_id = result.get("id")
        logger.info(
            "email notification sent",
            extra={"extra_fields": {**log_ctx, "email_id": str(email_id)}},
        )
        return NotificationOutcome.sent(self.channel, email_id)
