"""Shared pytest fixtures for Kostly tests."""
import sys
sys.dont_write_bytecode = True

import threading  # noqa: E402
from concurrent.futures import ThreadPoolExecutor  # noqa: E402

import pytest  # noqa: E402

from helpers import FakeEmailAdapter, FakeStore, FakeWhatsAppAdapter  # noqa: E402


@pytest.fixture
def executor():
    """Dedicated worker pool; never waits on abandoned (hung) sends."""
    pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="test-notify")
    yield pool
    pool.shutdown(wait=False)


@pytest.fixture
def release():
    """Event that hanging fakes block on; set at teardown so threads exit."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def whatsapp():
    return FakeWhatsAppAdapter()


@pytest.fixture
def email_adapter():
    return FakeEmailAdapter()


@pytest.fixture(autouse=True)
def _clear_notification_env(monkeypatch):
    """Keep provider configuration from the host environment out of tests."""
    for name in (
        "TWILIO_ACCOUNT_SID",
        "TWILIO_AUTH_TOKEN",
        "TWILIO_WHATSAPP_FROM",
        "TWILIO_STATUS_CALLBACK_URL",
        "TWILIO_VALIDATE_SIGNATURE",
        "RESEND_API_KEY",
        "EMAIL_FROM",
        "EMAIL_FROM_NAME",
        "APP_URL",
        "NOTIFY_WHATSAPP_TIMEOUT_SECONDS",
        "NOTIFY_EMAIL_TIMEOUT_SECONDS",
        "SUPABASE_JWT_SECRET",
        "ADMIN_JWT_AUDIENCE",
        "ADMIN_EMAILS",
    ):
        monkeypatch.delenv(name, raising=False)
