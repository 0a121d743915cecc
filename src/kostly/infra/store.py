"""Data store used by payment verification.

PaymentStore is the interface the verifier depends on; PostgresStore is the
production implementation over psycopg2 short transactions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from kostly.domain.models import PaymentRecord, Tenant
from kostly.infra.db import txn
from kostly.infra.repositories import payments_repository, tenants_repository


class PaymentNotUpdatedError(RuntimeError):
    """The status update matched no row."""


class PaymentStore(Protocol):
    """Store operations needed by the verification flow."""

    def get_payment(self, payment_id: str) -> PaymentRecord | None: ...

    def update_payment_status(
        self,
        payment_id: str,
        *,
        status: str,
        updated_at: datetime,
        admin_notes: str | None,
    ) -> None: ...

    def find_tenant_by_id(self, tenant_id: str) -> Tenant | None: ...

    def find_tenant_by_phone(self, phone: str) -> Tenant | None: ...


class PostgresStore:
    """PaymentStore backed by the payments/tenants tables."""

    def get_payment(self, payment_id: str) -> PaymentRecord | None:
        with txn() as cur:
            return payments_repository.get_payment(cur, payment_id=payment_id)

    def update_payment_status(
        self,
        payment_id: str,
        *,
        status: str,
        updated_at: datetime,
        admin_notes: str | None,
    ) -> None:
        with txn() as cur:
            updated = payments_repository.update_payment_status(
                cur,
                payment_id=payment_id,
                status=status,
                updated_at=updated_at,
                admin_notes=admin_notes,
            )
            if updated == 0:
                raise PaymentNotUpdatedError(f"payment {payment_id} was not updated")

    def find_tenant_by_id(self, tenant_id: str) -> Tenant | None:
        with txn() as cur:
            return tenants_repository.find_tenant_by_id(cur, tenant_id=tenant_id)

    def find_tenant_by_phone(self, phone: str) -> Tenant | None:
        with txn() as cur:
            return tenants_repository.find_tenant_by_phone(cur, phone=phone)
