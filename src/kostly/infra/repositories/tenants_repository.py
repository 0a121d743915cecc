"""Tenants repository - read-only lookups used for contact fallback."""

from typing import Any

from psycopg2.extensions import cursor as PgCursor

from kostly.domain.models import Tenant
from kostly.domain.phone import phone_variants
from kostly.infra.db import fetchone

_TENANT_COLUMNS = "id, name, phone, email, room_number"


def _row_to_tenant(row: tuple[Any, ...]) -> Tenant:
    return Tenant(
        id=str(row[0]),
        name=row[1],
        phone=row[2],
        email=row[3],
        room_number=row[4],
    )


def find_tenant_by_id(cur: PgCursor, *, tenant_id: str) -> Tenant | None:
    row = fetchone(cur, f"SELECT {_TENANT_COLUMNS} FROM tenants WHERE id = %s", (tenant_id,))
    return _row_to_tenant(row) if row else None


def find_tenant_by_phone(cur: PgCursor, *, phone: str) -> Tenant | None:
    """Match a tenant by phone in any local spelling.

    Stored numbers are compared with separators stripped against every
    spelling of the normalized number. Active tenants first, then most recent.
    """
    variants = phone_variants(phone)
    if not variants:
        return None
    row = fetchone(
        cur,
        f"""
        SELECT {_TENANT_COLUMNS}
        FROM tenants
        WHERE regexp_replace(phone, '[[:space:].-]', '', 'g') = ANY(%s)
        ORDER BY is_active DESC, created_at DESC
        LIMIT 1
        """,
        (variants,),
    )
    return _row_to_tenant(row) if row else None
