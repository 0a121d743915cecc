"""Concurrent, time-bounded notification dispatch for one verification event.

Each channel with a target runs as its own task with its own deadline, on
its own worker pool. A channel that fails or hangs never affects the other,
including across requests, and dispatch() always returns an outcome for both
channels.
"""

from __future__ import annotations

import os
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, Mapping

from kostly.domain.models import NotificationOutcome
from kostly.domain.phone import normalize_phone
from kostly.notifications.email import EmailAdapter
from kostly.notifications.task_set import BoundedTaskSet, TaskResult
from kostly.notifications.templates import EMAIL_TYPE_BY_ACTION
from kostly.notifications.whatsapp import WhatsAppAdapter
from kostly.observability.logging import get_logger
from kostly.observability.redaction import safe_log_context

logger = get_logger(__name__)

WHATSAPP_TIMEOUT_SECONDS = 15.0
EMAIL_TIMEOUT_SECONDS = 10.0

TIMEOUT_ERROR = "Timeout"
CHANNELS = ("whatsapp", "email")


@dataclass(frozen=True)
class DispatchResult:
    outcomes: dict[str, NotificationOutcome]
    attempted: int
    successful: int

    @property
    def whatsapp(self) -> NotificationOutcome:
        return self.outcomes["whatsapp"]

    @property
    def email(self) -> NotificationOutcome:
        return self.outcomes["email"]


def _timeout_from_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = float(raw)
    if value <= 0:
        raise RuntimeError(f"{name} must be > 0")
    return value


def channel_timeouts_from_env() -> dict[str, float]:
    """Per-channel deadlines from NOTIFY_*_TIMEOUT_SECONDS, with defaults."""
    return {
        "whatsapp": _timeout_from_env("NOTIFY_WHATSAPP_TIMEOUT_SECONDS", WHATSAPP_TIMEOUT_SECONDS),
        "email": _timeout_from_env("NOTIFY_EMAIL_TIMEOUT_SECONDS", EMAIL_TIMEOUT_SECONDS),
    }


def _settled_outcome(channel: str, result: TaskResult) -> NotificationOutcome:
    if result.status == "timed_out":
        return NotificationOutcome.failed(channel, TIMEOUT_ERROR)
    if result.status == "failed":
        # adapters convert their own errors; this covers anything that escaped
        return NotificationOutcome.failed(channel, str(result.error) or type(result.error).__name__)
    if isinstance(result.value, NotificationOutcome):
        return result.value
    return NotificationOutcome.failed(channel, "Invalid adapter result")


class NotificationDispatcher:
    """Fan a verification event out to WhatsApp and email."""

    def __init__(
        self,
        whatsapp: WhatsAppAdapter,
        email: EmailAdapter,
        *,
        whatsapp_timeout: float = WHATSAPP_TIMEOUT_SECONDS,
        email_timeout: float = EMAIL_TIMEOUT_SECONDS,
        executor: Executor | Mapping[str, Executor] | None = None,
    ) -> None:
        self._whatsapp = whatsapp
        self._email = email
        self._timeouts = {"whatsapp": whatsapp_timeout, "email": email_timeout}
        self._executor = executor

    @classmethod
    def from_env(
        cls,
        whatsapp: WhatsAppAdapter,
        email: EmailAdapter,
        *,
        executor: Executor | Mapping[str, Executor] | None = None,
    ) -> NotificationDispatcher:
        timeouts = channel_timeouts_from_env()
        return cls(
            whatsapp,
            email,
            whatsapp_timeout=timeouts["whatsapp"],
            email_timeout=timeouts["email"],
            executor=executor,
        )

    @property
    def whatsapp(self) -> WhatsAppAdapter:
        return self._whatsapp

    @property
    def email(self) -> EmailAdapter:
        return self._email

    @property
    def timeouts(self) -> dict[str, float]:
        return dict(self._timeouts)

    async def dispatch(
        self,
        *,
        phone: str | None,
        email: str | None,
        action: str,
        whatsapp_message: str,
        email_data: dict[str, Any],
    ) -> DispatchResult:
        """Notify the tenant over every channel that has a target.

        Args:
            phone: Tenant phone in any local format (normalized here).
            email: Tenant email address.
            action: Verification action ("success" or "rejected").
            whatsapp_message: Rendered WhatsApp text.
            email_data: Template data for the email channel.
        """
        outcomes: dict[str, NotificationOutcome] = {
            channel: NotificationOutcome.not_attempted(channel) for channel in CHANNELS
        }
        tasks = BoundedTaskSet(self._executor)

        target_phone = normalize_phone(phone)
        if target_phone:
            tasks.submit(
                "whatsapp",
                self._whatsapp.send,
                target_phone,
                whatsapp_message,
                timeout=self._timeouts["whatsapp"],
            )

        target_email = email.strip() if email else None
        if target_email:
            tasks.submit(
                "email",
                self._email.send,
                target_email,
                EMAIL_TYPE_BY_ACTION.get(action, action),
                email_data,
                timeout=self._timeouts["email"],
            )

        attempted = len(tasks)
        settled = await tasks.settle()
        for channel, result in settled.items():
            outcomes[channel] = _settled_outcome(channel, result)
            if result.status == "timed_out":
                logger.warning(
                    "notification channel timed out",
                    extra={
                        "extra_fields": safe_log_context(
                            channel=channel, timeout_seconds=self._timeouts[channel]
                        )
                    },
                )

        successful = sum(1 for outcome in outcomes.values() if outcome.success)
        logger.info(
            "notification dispatch settled",
            extra={
                "extra_fields": safe_log_context(
                    action=action,
                    attempted=attempted,
                    successful=successful,
                    whatsapp_success=outcomes["whatsapp"].success,
                    email_success=outcomes["email"].success,
                )
            },
        )
        return DispatchResult(outcomes=outcomes, attempted=attempted, successful=successful)
