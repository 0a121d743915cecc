"""Effective contact identity for payment notifications.

Precedence per field: the payment record's own value, then the tenant linked
by tenant_id, then a tenant matched by phone. Resolution never mutates the
payment record.
"""

from __future__ import annotations

from dataclasses import dataclass

from kostly.domain.models import PaymentRecord, Tenant


@dataclass(frozen=True)
class ContactIdentity:
    """Best available name/phone/room/email for one payment."""

    name: str | None
    phone: str | None
    room_number: str | None
    email: str | None


def _present(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def _first(*values: str | None) -> str | None:
    for value in values:
        text = _present(value)
        if text is not None:
            return text
    return None


def needs_tenant_fallback(payment: PaymentRecord) -> bool:
    """True if any contact field is missing on the record itself."""
    return any(
        _present(value) is None
        for value in (payment.tenant_name, payment.phone, payment.room_number, payment.email)
    )


def resolve_contact(
    payment: PaymentRecord,
    linked_tenant: Tenant | None = None,
    phone_tenant: Tenant | None = None,
) -> ContactIdentity:
    """Resolve the effective contact identity for a payment."""
    tenants = [t for t in (linked_tenant, phone_tenant) if t is not None]

    return ContactIdentity(
        name=_first(payment.tenant_name, *(t.name for t in tenants)),
        phone=_first(payment.phone, *(t.phone for t in tenants)),
        room_number=_first(payment.room_number, *(t.room_number for t in tenants)),
        email=_first(payment.email, *(t.email for t in tenants)),
    )
