"""Tests for contact identity resolution."""

from helpers import make_payment

from kostly.domain.contacts import needs_tenant_fallback, resolve_contact
from kostly.domain.models import Tenant


class TestNeedsTenantFallback:
    def test_complete_record(self):
        payment = make_payment(email="budi@example.com")
        assert needs_tenant_fallback(payment) is False

    def test_missing_email(self):
        assert needs_tenant_fallback(make_payment(email=None)) is True

    def test_blank_counts_as_missing(self):
        assert needs_tenant_fallback(make_payment(email="x@y.z", tenant_name="  ")) is True


class TestResolveContact:
    def test_record_fields_win(self):
        payment = make_payment(email="rec@example.com")
        linked = Tenant(id="t1", name="Other", phone="0899", email="t@example.com", room_number="B2")

        contact = resolve_contact(payment, linked)

        assert contact.name == "Budi"
        assert contact.phone == "08123456789"
        assert contact.room_number == "A1"
        assert contact.email == "rec@example.com"

    def test_linked_tenant_fills_gaps(self):
        payment = make_payment(phone=None, email=None)
        linked = Tenant(id="t1", name="Budi S", phone="0811", email="budi@example.com")

        contact = resolve_contact(payment, linked)

        assert contact.name == "Budi"
        assert contact.phone == "0811"
        assert contact.email == "budi@example.com"

    def test_linked_before_phone_match(self):
        payment = make_payment(email=None, room_number=None)
        linked = Tenant(id="t1", name="L", phone="0811", email=None, room_number="L1")
        by_phone = Tenant(id="t2", name="P", phone="0811", email="p@example.com", room_number="P1")

        contact = resolve_contact(payment, linked, by_phone)

        assert contact.room_number == "L1"
        assert contact.email == "p@example.com"

    def test_nothing_available(self):
        payment = make_payment(tenant_name=None, phone=None, room_number=None)
        contact = resolve_contact(payment)
        assert contact.name is None
        assert contact.phone is None
        assert contact.email is None

    def test_payment_not_mutated(self):
        payment = make_payment(email=None)
        resolve_contact(payment, Tenant(id="t1", name="x", phone="y", email="e@x.io"))
        assert payment.email is None
