"""Tests for concurrent notification dispatch."""

from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from kostly.domain.models import NotificationOutcome
from kostly.notifications.dispatcher import NotificationDispatcher

MESSAGE = "Halo Budi"
EMAIL_DATA = {"tenant_name": "Budi", "month": "Oktober"}


def _dispatch(dispatcher, *, phone="08123456789", email="budi@example.com", action="success"):
    return asyncio.run(
        dispatcher.dispatch(
            phone=phone,
            email=email,
            action=action,
            whatsapp_message=MESSAGE,
            email_data=EMAIL_DATA,
        )
    )


@pytest.fixture
def dispatcher(whatsapp, email_adapter, executor):
    return NotificationDispatcher(
        whatsapp, email_adapter, whatsapp_timeout=0.3, email_timeout=0.3, executor=executor
    )


class TestDispatch:
    def test_both_channels(self, dispatcher, whatsapp, email_adapter):
        whatsapp.outcome = NotificationOutcome.sent("whatsapp", "SM1")
        email_adapter.outcome = NotificationOutcome.sent("email", "em_1")

        result = _dispatch(dispatcher)

        assert result.attempted == 2
        assert result.successful == 2
        assert whatsapp.calls == [("+628123456789", MESSAGE)]
        assert email_adapter.calls == [("budi@example.com", "payment_accepted", EMAIL_DATA)]

    def test_rejected_uses_rejected_email(self, dispatcher, email_adapter):
        _dispatch(dispatcher, action="rejected")
        assert email_adapter.calls[0][1] == "payment_rejected"

    def test_no_targets_short_circuits(self, dispatcher, whatsapp, email_adapter):
        result = _dispatch(dispatcher, phone=None, email="  ")

        assert result.attempted == 0
        assert result.successful == 0
        assert whatsapp.calls == []
        assert email_adapter.calls == []
        assert result.whatsapp.to_dict() == {"attempted": False, "success": False, "error": "Not attempted"}
        assert result.email.to_dict() == {"attempted": False, "success": False, "error": "Not attempted"}

    def test_email_only(self, dispatcher, whatsapp):
        result = _dispatch(dispatcher, phone="")

        assert result.attempted == 1
        assert whatsapp.calls == []
        assert result.whatsapp.attempted is False
        assert result.email.success is True

    def test_hanging_whatsapp_isolated(self, dispatcher, whatsapp, email_adapter, release):
        whatsapp.block_on = release
        email_adapter.outcome = NotificationOutcome.sent("email", "em_1")

        start = time.monotonic()
        result = _dispatch(dispatcher)
        elapsed = time.monotonic() - start

        assert elapsed < 2
        assert result.email.success is True
        assert result.whatsapp.to_dict() == {"attempted": True, "success": False, "error": "Timeout"}
        assert result.attempted == 2
        assert result.successful == 1

    def test_adapter_exception_captured(self, dispatcher, whatsapp, email_adapter):
        whatsapp.error = RuntimeError("socket closed")

        result = _dispatch(dispatcher)

        assert result.whatsapp.attempted is True
        assert result.whatsapp.error == "socket closed"
        assert result.email.success is True

    def test_adapter_failure_outcome_passed_through(self, dispatcher, whatsapp):
        whatsapp.outcome = NotificationOutcome.failed("whatsapp", "Invalid phone number")

        result = _dispatch(dispatcher)

        assert result.whatsapp.error == "Invalid phone number"
        assert result.successful == 1


class TestFromEnv:
    def test_timeouts_from_env(self, monkeypatch, whatsapp, email_adapter):
        monkeypatch.setenv("NOTIFY_WHATSAPP_TIMEOUT_SECONDS", "5")
        dispatcher = NotificationDispatcher.from_env(whatsapp, email_adapter)
        assert dispatcher.timeouts == {"whatsapp": 5.0, "email": 10.0}

    def test_invalid_timeout(self, monkeypatch, whatsapp, email_adapter):
        monkeypatch.setenv("NOTIFY_EMAIL_TIMEOUT_SECONDS", "0")
        with pytest.raises(RuntimeError):
            NotificationDispatcher.from_env(whatsapp, email_adapter)


class TestChannelPools:
    def test_hung_whatsapp_sends_do_not_starve_email(self, whatsapp, email_adapter, release):
        pools = {
            "whatsapp": ThreadPoolExecutor(max_workers=1, thread_name_prefix="test-whatsapp"),
            "email": ThreadPoolExecutor(max_workers=1, thread_name_prefix="test-email"),
        }
        dispatcher = NotificationDispatcher(
            whatsapp, email_adapter, whatsapp_timeout=0.2, email_timeout=0.5, executor=pools
        )
        whatsapp.block_on = release
        try:
            first = _dispatch(dispatcher)
            second = _dispatch(dispatcher)
            email_only = _dispatch(dispatcher, phone=None)
        finally:
            release.set()
            for pool in pools.values():
                pool.shutdown(wait=False)

        assert first.whatsapp.error == "Timeout"
        assert second.whatsapp.error == "Timeout"
        assert [r.email.success for r in (first, second, email_only)] == [True, True, True]
        assert len(email_adapter.calls) == 3

    def test_default_pools_are_per_channel(self, whatsapp, email_adapter):
        seen = {}

        def record(channel):
            def send(*args):
                seen[channel] = threading.current_thread().name
                return NotificationOutcome.sent(channel, "ref")
            return send

        whatsapp.send = record("whatsapp")
        email_adapter.send = record("email")
        dispatcher = NotificationDispatcher(whatsapp, email_adapter, whatsapp_timeout=1, email_timeout=1)

        result = _dispatch(dispatcher)

        assert result.successful == 2
        assert seen["whatsapp"].startswith("notify-whatsapp")
        assert seen["email"].startswith("notify-email")
