"""Twilio WhatsApp delivery-status callback.

Security:
- X-Twilio-Signature is verified with the account auth token
- Without a token the route fails closed unless TWILIO_VALIDATE_SIGNATURE=false
- Logs contain NO PII (To/From/Body are never logged)
"""

from __future__ import annotations

import os
from urllib.parse import parse_qsl

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse

from kostly.notifications.whatsapp import SignatureVerificationError, verify_signature
from kostly.observability.correlation import get_correlation_id
from kostly.observability.logging import get_logger
from kostly.observability.redaction import safe_log_context

router = APIRouter(prefix="/api", tags=["webhooks"])

logger = get_logger(__name__)

_DISABLED_VALUES = {"0", "false", "no", "off"}


def _validation_enabled() -> bool:
    return os.environ.get("TWILIO_VALIDATE_SIGNATURE", "true").strip().lower() not in _DISABLED_VALUES


def _signed_url(request: Request) -> str:
    """URL Twilio signed: the configured public callback URL, else the request URL."""
    configured = os.environ.get("TWILIO_STATUS_CALLBACK_URL", "").strip()
    if configured:
        query = request.url.query
        return f"{configured}?{query}" if query and "?" not in configured else configured
    return str(request.url)


def _forbidden(error: str) -> JSONResponse:
    return JSONResponse(status_code=403, content={"ok": False, "error": error})


@router.api_route("/whatsapp-status", methods=["GET", "POST"])
async def whatsapp_status(
    request: Request,
    x_twilio_signature: str | None = Header(None, alias="X-Twilio-Signature"),
) -> JSONResponse:
    """Receive a delivery status update for a previously sent message.

    Returns:
        200 {"ok": true, "message": "Status received", "data": {...}}.
        403 if the signature cannot be verified.
    """
    correlation_id = get_correlation_id()

    if request.method == "POST":
        body_bytes = await request.body()
        params = dict(parse_qsl(body_bytes.decode("utf-8", errors="replace"), keep_blank_values=True))
        signed_params = params
    else:
        params = dict(request.query_params)
        signed_params = {}

    if _validation_enabled():
        auth_token = os.environ.get("TWILIO_AUTH_TOKEN", "").strip()
        if not auth_token:
            logger.warning(
                "twilio status callback rejected: auth token not configured",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id)},
            )
            return _forbidden("Signature validation not configured")
        try:
            verify_signature(_signed_url(request), signed_params, x_twilio_signature or "", auth_token)
        except SignatureVerificationError as e:
            logger.warning(
                "twilio signature verification failed",
                extra={"extra_fields": safe_log_context(correlationId=correlation_id, error=str(e))},
            )
            return _forbidden("Invalid signature")

    message_sid = params.get("MessageSid")
    status = params.get("MessageStatus")
    error_code = params.get("ErrorCode")

    log_fields = safe_log_context(
        correlationId=correlation_id,
        message_sid=message_sid,
        message_status=status,
        error_code=error_code,
    )
    if error_code or status in ("failed", "undelivered"):
        logger.warning("whatsapp delivery failed", extra={"extra_fields": log_fields})
    else:
        logger.info("whatsapp delivery status", extra={"extra_fields": log_fields})

    return JSONResponse(
        status_code=200,
        content={
            "ok": True,
            "message": "Status received",
            "data": {"messageSid": message_sid, "status": status},
        },
    )
