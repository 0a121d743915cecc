"""Process-wide service wiring.

Provider clients, the dispatcher and the store are constructed once at app
startup and shared by every request via app.state.services.
"""

from __future__ import annotations

from dataclasses import dataclass

from kostly.domain.verification import PaymentVerifier
from kostly.infra.store import PaymentStore, PostgresStore
from kostly.notifications.dispatcher import NotificationDispatcher, channel_timeouts_from_env
from kostly.notifications.email import EmailAdapter
from kostly.notifications.whatsapp import WhatsAppAdapter


@dataclass
class Services:
    store: PaymentStore
    dispatcher: NotificationDispatcher
    verifier: PaymentVerifier


def build_services(store: PaymentStore | None = None) -> Services:
    """Build services from environment configuration.

    Provider HTTP timeouts match the channel deadlines, and each channel sends
    on its own worker pool.
    """
    store = store or PostgresStore()
    timeouts = channel_timeouts_from_env()
    dispatcher = NotificationDispatcher(
        WhatsAppAdapter.from_env(timeout=timeouts["whatsapp"]),
        EmailAdapter.from_env(timeout=timeouts["email"]),
        whatsapp_timeout=timeouts["whatsapp"],
        email_timeout=timeouts["email"],
    )
    return Services(
        store=store,
        dispatcher=dispatcher,
        verifier=PaymentVerifier(store, dispatcher),
    )
