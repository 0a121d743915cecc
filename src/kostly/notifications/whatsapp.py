"""WhatsApp notifications via the Twilio Messages API.

Security: NEVER log the recipient number or message text. Only hashes and
lengths.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
from typing import Any

import requests

from kostly.domain.models import NotificationOutcome
from kostly.domain.phone import normalize_phone
from kostly.observability.correlation import get_correlation_id
from kostly.observability.logging import get_logger
from kostly.observability.redaction import hash_identifier, safe_log_context

logger = get_logger(__name__)

DEFAULT_API_BASE_URL = "https://api.twilio.com"

# Timeout for HTTP requests (seconds). Never above the WhatsApp dispatch deadline,
# so an abandoned call frees its worker about when the dispatcher gives up on it.
HTTP_TIMEOUT = 15

WHATSAPP_PREFIX = "whatsapp:"

# Twilio error codes with a tenant-actionable meaning
TWILIO_ERROR_MESSAGES: dict[int, str] = {
    20003: "Invalid Twilio credentials",
    21211: "Invalid phone number",
    21408: "WhatsApp sender not approved",
    21610: "Recipient has opted out",
    63016: "Must join WhatsApp sandbox",
}


class TwilioError(RuntimeError):
    """Error returned by the Twilio API (or transport failure)."""

    def __init__(self, message: str, *, code: int | None = None, status_code: int | None = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class TwilioClient:
    """Thin wrapper around the Twilio Messages REST endpoint.

    Usage:
        client = TwilioClient(account_sid="AC...", auth_token="...")
        message = client.create_message(
            from_="whatsapp:+14155238886",
            to="whatsapp:+628123456789",
            body="Halo",
        )
        sid = message["sid"]
    """

    def __init__(
        self,
        *,
        account_sid: str,
        auth_token: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def auth_token(self) -> str:
        return self._auth_token

    def create_message(
        self,
        *,
        from_: str,
        to: str,
        body: str,
        status_callback: str | None = None,
    ) -> dict[str, Any]:
        """Create (send) a message.

        Returns:
            Decoded Twilio message resource (contains "sid").

        Raises:
            TwilioError: On HTTP error status or network failure.
        """
        url = f"{self._base_url}/2010-04-01/Accounts/{self._account_sid}/Messages.json"
        form = {"From": from_, "To": to, "Body": body}
        if status_callback:
            form["StatusCallback"] = status_callback

        try:
            resp = requests.post(
                url,
                data=form,
                auth=(self._account_sid, self._auth_token),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TwilioError(f"Twilio request failed: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = {}
            raise TwilioError(
                str(payload.get("message") or f"HTTP {resp.status_code}"),
                code=payload.get("code"),
                status_code=resp.status_code,
            )

        return resp.json()


def _with_prefix(number: str) -> str:
    return number if number.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{number}"


def describe_twilio_error(exc: TwilioError) -> str:
    """Human-readable reason for a failed send."""
    if exc.code is not None and exc.code in TWILIO_ERROR_MESSAGES:
        return TWILIO_ERROR_MESSAGES[exc.code]
    return f"WhatsApp send failed: {exc}"


class WhatsAppAdapter:
    """WhatsApp channel: send(to, body) -> NotificationOutcome, never raises."""

    channel = "whatsapp"

    def __init__(
        self,
        client: TwilioClient | None,
        sender: str | None,
        *,
        status_callback_url: str | None = None,
    ) -> None:
        self._client = client
        self._sender = sender
        self._status_callback_url = status_callback_url

    @classmethod
    def from_env(cls, *, timeout: float = HTTP_TIMEOUT) -> WhatsAppAdapter:
        """Build from environment.

        Env vars:
        - TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN: credentials
        - TWILIO_WHATSAPP_FROM: approved sender number (with or without "whatsapp:")
        - TWILIO_API_BASE_URL: optional API base URL override
        - TWILIO_STATUS_CALLBACK_URL: optional delivery status callback

        Missing credentials leave the adapter unconfigured; sends then report
        a not-attempted outcome instead of failing at startup. timeout bounds
        each Twilio HTTP call.
        """
        account_sid = os.environ.get("TWILIO_ACCOUNT_SID", "").strip()
        auth_token = os.environ.get("TWILIO_AUTH_TOKEN", "").strip()
        client = None
        if account_sid and auth_token:
            client = TwilioClient(
                account_sid=account_sid,
                auth_token=auth_token,
                base_url=os.environ.get("TWILIO_API_BASE_URL", DEFAULT_API_BASE_URL),
                timeout=timeout,
            )
        return cls(
            client,
            os.environ.get("TWILIO_WHATSAPP_FROM", "").strip() or None,
            status_callback_url=os.environ.get("TWILIO_STATUS_CALLBACK_URL") or None,
        )

    @property
    def configured(self) -> bool:
        return self._client is not None and bool(self._sender)

    def send(self, to: str | None, body: str) -> NotificationOutcome:
        """Send a WhatsApp message to a tenant phone number."""
        if not self.configured:
            logger.warning("whatsapp not configured, skipping send")
            return NotificationOutcome.not_attempted(self.channel, "WhatsApp service not configured")

        phone = normalize_phone(to)
        if not phone:
            return NotificationOutcome.not_attempted(self.channel, "Invalid phone number format")

        log_ctx = safe_log_context(
            correlationId=get_correlation_id(),
            to_hash=hash_identifier(phone),
            text_len=len(body),
            provider="twilio",
        )
        logger.info("sending whatsapp notification", extra={"extra_fields": log_ctx})

        try:
            message = self._client.create_message(
                from_=_with_prefix(self._sender),
                to=_with_prefix(phone),
                body=body,
                status_callback=self._status_callback_url,
            )
        except TwilioError as exc:
            logger.error(
                "whatsapp send failed",
                extra={
                    "extra_fields": {
                        **log_ctx,
                        **safe_log_context(error_code=exc.code, http_status=exc.status_code),
                    }
                },
            )
            return NotificationOutcome.failed(self.channel, describe_twilio_error(exc))
        except Exception as exc:
            logger.exception(
                "whatsapp send crashed",
                extra={"extra_fields": {**log_ctx, "error_type": type(exc).__name__}},
            )
            return NotificationOutcome.failed(self.channel, f"WhatsApp send failed: {type(exc).__name__}")

        sid = message.get("sid")
        logger.info(
            "whatsapp notification sent",
            extra={"extra_fields": {**log_ctx, "message_sid": str(sid)}},
        )
        return NotificationOutcome.sent(self.channel, sid)


class SignatureVerificationError(Exception):
    """Twilio request signature missing or invalid."""


def compute_signature(url: str, params: dict[str, str], auth_token: str) -> str:
    """Twilio request signature: base64(HMAC-SHA1(url + sorted key/value pairs))."""
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(
        key=auth_token.encode("utf-8"),
        msg=payload.encode("utf-8"),
        digestmod=hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(url: str, params: dict[str, str], signature_header: str, auth_token: str) -> None:
    """Verify a Twilio webhook signature (X-Twilio-Signature).

    Args:
        url: Full callback URL as Twilio requested it (query string included).
        params: POST form parameters (empty for GET callbacks).
        signature_header: X-Twilio-Signature header value.
        auth_token: Twilio auth token used as HMAC key.

    Raises:
        SignatureVerificationError: If signature is invalid or missing.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    computed = compute_signature(url, params, auth_token)
    if not hmac.compare_digest(computed, signature_header):
        raise SignatureVerificationError("signature mismatch")
