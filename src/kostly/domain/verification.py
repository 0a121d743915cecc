"""Payment verification use case.

Flow per request: validate -> load payment -> write the new status -> notify
the tenant -> build the response.

The status write is the authoritative effect and always happens before any
notification. Notification problems are reported in the response, never
raised, and never undo the status write.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from kostly.domain.contacts import ContactIdentity, needs_tenant_fallback, resolve_contact
from kostly.domain.models import VERIFICATION_ACTIONS, NotificationOutcome, PaymentRecord, Tenant
from kostly.domain.phone import normalize_phone
from kostly.infra.store import PaymentStore
from kostly.notifications.dispatcher import CHANNELS, DispatchResult, NotificationDispatcher
from kostly.notifications.templates import render_whatsapp
from kostly.observability.logging import get_logger
from kostly.observability.redaction import safe_log_context

logger = get_logger(__name__)

ACTION_LABELS = {"success": "accepted", "rejected": "rejected"}
CHANNEL_LABELS = {"whatsapp": "WhatsApp", "email": "email"}


class VerificationError(Exception):
    """Base error; carries the HTTP status and machine-readable reason."""

    reason = "unexpected_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.message, "reason": self.reason}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequestError(VerificationError):
    reason = "invalid_parameters"
    status_code = 400
    default_message = "Missing required parameters"


class PaymentNotFoundError(VerificationError):
    reason = "not_found"
    status_code = 404
    default_message = "Payment not found"


class PaymentLoadError(VerificationError):
    reason = "store_read_failed"
    status_code = 500
    default_message = "Database fetch failed"


class PaymentUpdateError(VerificationError):
    reason = "store_write_failed"
    status_code = 500
    default_message = "Database update failed"


class VerifyPaymentRequest(BaseModel):
    """Body of POST /api/verify-payment; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | int
    action: Literal["success", "rejected"]
    admin_notes: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("id must be a string or integer")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("id must not be blank")
        return v

    @property
    def payment_id(self) -> str:
        return str(self.id)


def _is_missing(error: Mapping[str, Any]) -> bool:
    return error["type"] == "missing" or error.get("input") in (None, "")


def parse_request(body: Any) -> VerifyPaymentRequest:
    """Validate a raw request body.

    Raises:
        InvalidRequestError: On missing id/action, unknown action or
            non-string admin_notes.
    """
    if not isinstance(body, Mapping):
        raise InvalidRequestError("Request body must be a JSON object")
    try:
        return VerifyPaymentRequest.model_validate(dict(body))
    except ValidationError as exc:
        errors = {error["loc"][0]: error for error in exc.errors() if error["loc"]}

    if "id" in errors or ("action" in errors and _is_missing(errors["action"])):
        raise InvalidRequestError(
            "Missing required parameters",
            details={"required": {"id": "payment id", "action": "success|rejected"}},
        )
    if "action" in errors:
        raise InvalidRequestError(
            "Invalid action",
            details={"validActions": list(VERIFICATION_ACTIONS)},
        )
    if "admin_notes" in errors:
        raise InvalidRequestError("admin_notes must be a string")
    raise InvalidRequestError("Invalid request body")


@dataclass(frozen=True)
class VerificationResult:
    payment: PaymentRecord
    contact: ContactIdentity
    dispatch: DispatchResult
    message: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "payment": {
                "id": self.payment.id,
                "tenant_name": self.contact.name,
                "phone": self.contact.phone,
                "room_number": self.contact.room_number,
                "month": self.payment.month,
                "status": self.payment.status,
                "admin_notes": self.payment.admin_notes,
                "updated_at": self.payment.updated_at.isoformat() if self.payment.updated_at else None,
            },
            "notifications": {
                "attempted": self.dispatch.attempted,
                "successful": self.dispatch.successful,
                "whatsapp": self.dispatch.whatsapp.to_dict(),
                "email": self.dispatch.email.to_dict(),
                "tenant_email": self.contact.email,
            },
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


def summarize(status: str, dispatch: DispatchResult) -> str:
    """Admin-facing summary; branches on all / some / none / nothing attempted."""
    label = ACTION_LABELS.get(status, status)
    attempted = [c for c in CHANNELS if dispatch.outcomes[c].attempted or _was_scheduled(dispatch, c)]
    succeeded = [c for c in CHANNELS if dispatch.outcomes[c].success]
    failed = [c for c in attempted if c not in succeeded]

    if dispatch.attempted == 0:
        return (
            f"Payment {label}. No notification sent: no phone number or email on file. "
            "Please inform the tenant manually."
        )
    if dispatch.successful >= dispatch.attempted:
        return f"Payment {label}. Tenant notified via {_join(succeeded)}."
    if dispatch.successful == 0:
        return (
            f"Payment {label}. All notifications failed ({_errors(dispatch, failed)}). "
            "Please inform the tenant manually."
        )
    return (
        f"Payment {label}. Tenant notified via {_join(succeeded)}; "
        f"{_join(failed)} failed ({_errors(dispatch, failed)})."
    )


def _was_scheduled(dispatch: DispatchResult, channel: str) -> bool:
    outcome = dispatch.outcomes[channel]
    return not outcome.attempted and outcome.error not in (None, "Not attempted")


def _join(channels: list[str]) -> str:
    return " and ".join(CHANNEL_LABELS[c] for c in channels)


def _errors(dispatch: DispatchResult, channels: list[str]) -> str:
    return "; ".join(
        f"{CHANNEL_LABELS[c]}: {dispatch.outcomes[c].error or 'unknown error'}" for c in channels
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PaymentVerifier:
    """Accept or reject a payment, then notify the tenant best-effort."""

    def __init__(
        self,
        store: PaymentStore,
        dispatcher: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._clock = clock

    async def verify(self, body: Any) -> VerificationResult:
        """Run the verification flow for one admin action.

        Raises:
            VerificationError: Subclass describing why the status did not change.
        """
        try:
            return await self._verify(body)
        except VerificationError:
            raise
        except Exception as exc:
            logger.exception(
                "unexpected verification error",
                extra={"extra_fields": {"error_type": type(exc).__name__}},
            )
            raise VerificationError(details={"error_type": type(exc).__name__}) from exc

    async def _verify(self, body: Any) -> VerificationResult:
        request = parse_request(body)
        log_ctx = safe_log_context(payment_id=request.payment_id, action=request.action)

        try:
            payment = await asyncio.to_thread(self._store.get_payment, request.payment_id)
        except Exception as exc:
            logger.exception("payment fetch failed", extra={"extra_fields": log_ctx})
            raise PaymentLoadError(details={"error_type": type(exc).__name__}) from exc

        if payment is None:
            logger.warning("payment not found", extra={"extra_fields": log_ctx})
            raise PaymentNotFoundError(details={"paymentId": request.payment_id})

        updated_at = self._clock()
        try:
            await asyncio.to_thread(
                self._store.update_payment_status,
                payment.id,
                status=request.action,
                updated_at=updated_at,
                admin_notes=request.admin_notes,
            )
        except Exception as exc:
            logger.exception("payment status update failed", extra={"extra_fields": log_ctx})
            raise PaymentUpdateError(details={"error_type": type(exc).__name__}) from exc

        logger.info(
            "payment status updated",
            extra={"extra_fields": {**log_ctx, **safe_log_context(previous_status=payment.status)}},
        )
        updated = replace(
            payment,
            status=request.action,
            updated_at=updated_at,
            admin_notes=request.admin_notes,
        )

        contact = await self._resolve_contact(payment)
        dispatch = await self._notify(updated, contact)

        return VerificationResult(
            payment=updated,
            contact=contact,
            dispatch=dispatch,
            message=summarize(request.action, dispatch),
            timestamp=self._clock(),
        )

    async def _lookup(self, fn: Callable[[str], Tenant | None], key: str) -> Tenant | None:
        try:
            return await asyncio.to_thread(fn, key)
        except Exception as exc:
            # Contact fallback is best-effort; the status is already committed.
            logger.warning(
                "tenant lookup failed",
                extra={"extra_fields": {"lookup": fn.__name__, "error_type": type(exc).__name__}},
            )
            return None

    async def _resolve_contact(self, payment: PaymentRecord) -> ContactIdentity:
        if not needs_tenant_fallback(payment):
            return resolve_contact(payment)

        linked = None
        if payment.tenant_id:
            linked = await self._lookup(self._store.find_tenant_by_id, payment.tenant_id)

        contact = resolve_contact(payment, linked)
        phone_match = None
        if payment.phone and None in (contact.name, contact.room_number, contact.email):
            phone_match = await self._lookup(self._store.find_tenant_by_phone, payment.phone)

        return resolve_contact(payment, linked, phone_match)

    async def _notify(self, payment: PaymentRecord, contact: ContactIdentity) -> DispatchResult:
        params = {
            "tenant_name": contact.name,
            "month": payment.month,
            "room_number": contact.room_number,
        }
        if payment.status == "rejected":
            params["admin_notes"] = payment.admin_notes

        try:
            message = render_whatsapp(payment.status, params)
            return await self._dispatcher.dispatch(
                phone=contact.phone,
                email=contact.email,
                action=payment.status,
                whatsapp_message=message,
                email_data={**params, "phone": contact.phone, "admin_notes": payment.admin_notes},
            )
        except Exception as exc:
            logger.exception(
                "notification dispatch failed",
                extra={"extra_fields": {"error_type": type(exc).__name__}},
            )
            error = f"Notification error: {type(exc).__name__}"
            targets = {
                "whatsapp": bool(normalize_phone(contact.phone)),
                "email": bool(contact.email and contact.email.strip()),
            }
            return DispatchResult(
                outcomes={
                    c: NotificationOutcome.failed(c, error) if targets[c] else NotificationOutcome.not_attempted(c)
                    for c in CHANNELS
                },
                attempted=sum(targets.values()),
                successful=0,
            )
