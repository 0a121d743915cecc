"""Tests for payments/tenants repositories and PostgresStore (mocked cursor)."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from kostly.infra.repositories import payments_repository, tenants_repository
from kostly.infra.store import PaymentNotUpdatedError, PostgresStore

NOW = datetime(2026, 10, 19, tzinfo=timezone.utc)

PAYMENT_ROW = ("p1", "Budi", "08123456789", "Oktober", "A1", "pending", None, "t1", None, NOW)


class TestPaymentsRepository:
    def test_get_payment_maps_row(self):
        cur = MagicMock()
        cur.fetchone.return_value = PAYMENT_ROW

        payment = payments_repository.get_payment(cur, payment_id="p1")

        assert payment.id == "p1"
        assert payment.tenant_name == "Budi"
        assert payment.status == "pending"
        assert payment.tenant_id == "t1"
        assert cur.execute.call_args.args[1] == ("p1",)

    def test_get_payment_missing(self):
        cur = MagicMock()
        cur.fetchone.return_value = None
        assert payments_repository.get_payment(cur, payment_id="x") is None

    def test_update_writes_all_fields(self):
        cur = MagicMock()
        cur.rowcount = 1

        updated = payments_repository.update_payment_status(
            cur, payment_id="p1", status="rejected", updated_at=NOW, admin_notes="buram"
        )

        assert updated == 1
        assert cur.execute.call_args.args[1] == ("rejected", NOW, "buram", "p1")

    def test_update_rejects_unknown_status(self):
        with pytest.raises(ValueError, match="Invalid status"):
            payments_repository.update_payment_status(
                MagicMock(), payment_id="p1", status="paid", updated_at=NOW, admin_notes=None
            )


class TestTenantsRepository:
    def test_find_by_phone_prefers_active(self):
        cur = MagicMock()
        cur.fetchone.return_value = ("t1", "Budi", "0812", "b@x.io", "A1")

        tenant = tenants_repository.find_tenant_by_phone(cur, phone="0812")

        assert tenant.name == "Budi"
        sql = cur.execute.call_args.args[0]
        assert "is_active DESC" in sql
        assert "LIMIT 1" in sql

    def test_find_by_phone_matches_every_spelling(self):
        cur = MagicMock()
        cur.fetchone.return_value = ("t1", "Budi", "+62 812-3456-789", None, "A1")

        tenant = tenants_repository.find_tenant_by_phone(cur, phone="0812 3456 789")

        assert tenant.id == "t1"
        sql, params = cur.execute.call_args.args
        assert "regexp_replace(phone" in sql
        assert "= ANY(%s)" in sql
        assert sorted(params[0]) == ["+628123456789", "08123456789", "628123456789", "8123456789"]

    def test_find_by_phone_blank_skips_query(self):
        cur = MagicMock()
        assert tenants_repository.find_tenant_by_phone(cur, phone="  ") is None
        cur.execute.assert_not_called()

    def test_find_by_id_missing(self):
        cur = MagicMock()
        cur.fetchone.return_value = None
        assert tenants_repository.find_tenant_by_id(cur, tenant_id="t1") is None


class TestPostgresStore:
    def _patch_txn(self, cur):
        ctx = MagicMock()
        ctx.__enter__.return_value = cur
        ctx.__exit__.return_value = False
        return patch("kostly.infra.store.txn", return_value=ctx)

    def test_update_zero_rows_raises(self):
        cur = MagicMock()
        cur.rowcount = 0
        with self._patch_txn(cur):
            with pytest.raises(PaymentNotUpdatedError):
                PostgresStore().update_payment_status("p1", status="success", updated_at=NOW, admin_notes=None)

    def test_get_payment(self):
        cur = MagicMock()
        cur.fetchone.return_value = PAYMENT_ROW
        with self._patch_txn(cur):
            assert PostgresStore().get_payment("p1").id == "p1"
