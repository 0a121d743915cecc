"""Domain models for payment verification and tenant notification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

PaymentStatus = Literal["pending", "success", "rejected"]
VerificationAction = Literal["success", "rejected"]
Channel = Literal["whatsapp", "email"]

VERIFICATION_ACTIONS: tuple[str, ...] = ("success", "rejected")


@dataclass(frozen=True)
class PaymentRecord:
    """A payment-proof submission as stored in the payments table.

    tenant_name/phone/room_number are captured at submission time and may
    duplicate the linked tenant's fields.
    """

    id: str
    tenant_name: str | None
    phone: str | None
    month: str | None
    room_number: str | None
    status: PaymentStatus
    email: str | None = None
    tenant_id: str | None = None
    admin_notes: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Tenant:
    """A person renting a room, tracked independently of payments."""

    id: str
    name: str | None
    phone: str | None
    email: str | None = None
    room_number: str | None = None


@dataclass(frozen=True)
class NotificationOutcome:
    """Result of one notification channel for one verification request."""

    channel: Channel
    attempted: bool
    success: bool
    error: str | None = None
    provider_ref: str | None = None

    @classmethod
    def not_attempted(cls, channel: Channel, error: str = "Not attempted") -> NotificationOutcome:
        return cls(channel=channel, attempted=False, success=False, error=error)

    @classmethod
    def failed(cls, channel: Channel, error: str) -> NotificationOutcome:
        return cls(channel=channel, attempted=True, success=False, error=error)

    @classmethod
    def sent(cls, channel: Channel, provider_ref: str | None) -> NotificationOutcome:
        return cls(channel=channel, attempted=True, success=True, provider_ref=provider_ref)

    def to_dict(self) -> dict[str, Any]:
        """Response shape; the channel is the key it is stored under."""
        data: dict[str, Any] = {"attempted": self.attempted, "success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.provider_ref is not None:
            data["providerRef"] = self.provider_ref
        return data
