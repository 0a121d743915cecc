"""Payments repository - persistence for payment-proof submissions.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from kostly.domain.models import PaymentRecord
from kostly.infra.db import fetchone

VALID_STATUSES = {"pending", "success", "rejected"}

_PAYMENT_COLUMNS = (
    "id, tenant_name, phone, month, room_number, status, email, tenant_id, "
    "admin_notes, updated_at"
)


def _row_to_payment(row: tuple[Any, ...]) -> PaymentRecord:
    return PaymentRecord(
        id=str(row[0]),
        tenant_name=row[1],
        phone=row[2],
        month=row[3],
        room_number=row[4],
        status=row[5],
        email=row[6],
        tenant_id=str(row[7]) if row[7] else None,
        admin_notes=row[8],
        updated_at=row[9],
    )


def get_payment(cur: PgCursor, *, payment_id: str) -> PaymentRecord | None:
    """Get a payment by ID.

    Returns:
        PaymentRecord or None if not found.
    """
    row = fetchone(cur, f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE id = %s", (payment_id,))
    if row is None:
        return None
    return _row_to_payment(row)


def update_payment_status(
    cur: PgCursor,
    *,
    payment_id: str,
    status: str,
    updated_at: datetime,
    admin_notes: str | None,
) -> int:
    """Write status, updated_at and admin_notes in one statement.

    Re-verifying an already resolved payment overwrites the previous result.

    Returns:
        Number of rows updated (0 if the payment no longer exists).

    Raises:
        ValueError: If status is not in VALID_STATUSES.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {status}. Must be one of {VALID_STATUSES}")

    cur.execute(
        """
        UPDATE payments
        SET status = %s,
            updated_at = %s,
            admin_notes = %s
        WHERE id = %s
        """,
        (status, updated_at, admin_notes, payment_id),
    )
    return cur.rowcount
