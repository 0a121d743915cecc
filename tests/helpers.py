"""Shared test doubles for Kostly tests.

These are NOT fixtures - they are plain classes and functions imported by
conftest.py and individual test files.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone

import jwt

from kostly.domain.models import NotificationOutcome, PaymentRecord, Tenant
from kostly.domain.phone import normalize_phone

TEST_JWT_SECRET = "test-supabase-jwt-secret-with-enough-length"


def make_payment(**overrides) -> PaymentRecord:
    fields = {
        "id": "p1",
        "tenant_name": "Budi",
        "phone": "08123456789",
        "month": "Oktober 2026",
        "room_number": "A1",
        "status": "pending",
        "email": None,
        "tenant_id": None,
        "admin_notes": None,
        "updated_at": datetime(2026, 10, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return PaymentRecord(**fields)


def create_admin_token(
    *,
    sub: str = "admin-1",
    email: str | None = "admin@kost.test",
    aud: str = "authenticated",
    secret: str = TEST_JWT_SECRET,
    exp_delta: int = 3600,
) -> str:
    now = int(time.time())
    payload = {"sub": sub, "aud": aud, "iat": now, "exp": now + exp_delta}
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


class FakeStore:
    """In-memory PaymentStore recording every call in order."""

    def __init__(self) -> None:
        self.payments: dict[str, PaymentRecord] = {}
        self.tenants: dict[str, Tenant] = {}
        self.calls: list[str] = []
        self.get_error: Exception | None = None
        self.update_error: Exception | None = None
        self.lookup_error: Exception | None = None

    def add_payment(self, payment: PaymentRecord) -> PaymentRecord:
        self.payments[payment.id] = payment
        return payment

    def add_tenant(self, tenant: Tenant) -> Tenant:
        self.tenants[tenant.id] = tenant
        return tenant

    def get_payment(self, payment_id):
        self.calls.append("get_payment")
        if self.get_error:
            raise self.get_error
        return self.payments.get(payment_id)

    def update_payment_status(self, payment_id, *, status, updated_at, admin_notes):
        self.calls.append("update_payment_status")
        if self.update_error:
            raise self.update_error
        current = self.payments[payment_id]
        self.payments[payment_id] = PaymentRecord(
            id=current.id,
            tenant_name=current.tenant_name,
            phone=current.phone,
            month=current.month,
            room_number=current.room_number,
            status=status,
            email=current.email,
            tenant_id=current.tenant_id,
            admin_notes=admin_notes,
            updated_at=updated_at,
        )

    def find_tenant_by_id(self, tenant_id):
        self.calls.append("find_tenant_by_id")
        if self.lookup_error:
            raise self.lookup_error
        return self.tenants.get(tenant_id)

    def find_tenant_by_phone(self, phone):
        self.calls.append("find_tenant_by_phone")
        if self.lookup_error:
            raise self.lookup_error
        for tenant in self.tenants.values():
            if tenant.phone and normalize_phone(tenant.phone) == normalize_phone(phone):
                return tenant
        return None


class _FakeAdapter:
    """Records sends; returns a scripted outcome, raises, or blocks."""

    channel = ""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.outcome: NotificationOutcome | None = None
        self.error: Exception | None = None
        self.block_on: threading.Event | None = None
        self.configured = True
        self.call_log: list[str] | None = None

    def _respond(self, default_ref: str) -> NotificationOutcome:
        if self.call_log is not None:
            self.call_log.append(f"send_{self.channel}")
        if self.block_on is not None:
            self.block_on.wait(timeout=30)
        if self.error is not None:
            raise self.error
        return self.outcome or NotificationOutcome.sent(self.channel, default_ref)


class FakeWhatsAppAdapter(_FakeAdapter):
    channel = "whatsapp"

    def send(self, to, body):
        self.calls.append((to, body))
        return self._respond("SM-default")


class FakeEmailAdapter(_FakeAdapter):
    channel = "email"

    def send(self, to, notification_type, data):
        self.calls.append((to, notification_type, data))
        return self._respond("email-default")


class LogRecorder(logging.Handler):
    """Collects records from loggers that do not propagate to root."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def text(self) -> str:
        parts = []
        for record in self.records:
            parts.append(record.getMessage())
            extra = getattr(record, "extra_fields", None)
            if extra:
                parts.append(str(extra))
        return " ".join(parts)


def attach_recorder(*logger_names: str) -> LogRecorder:
    recorder = LogRecorder()
    for name in logger_names:
        logging.getLogger(name).addHandler(recorder)
    return recorder


def detach_recorder(recorder: LogRecorder, *logger_names: str) -> None:
    for name in logger_names:
        logging.getLogger(name).removeHandler(recorder)
