"""Correlation ID management for request tracing."""

import contextvars
import uuid
from contextvars import ContextVar, Token
from typing import Any, Callable

# Context variable for correlation ID - accessible across async calls
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Set correlation ID in context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Reset correlation ID to previous value."""
    correlation_id_var.reset(token)


def bind_context(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap fn so it runs inside a copy of the caller's context.

    Executor threads do not inherit context variables; wrapping keeps the
    correlation ID visible to logs emitted from worker threads.
    """
    ctx = contextvars.copy_context()

    def runner(*args: Any, **kwargs: Any) -> Any:
        return ctx.run(fn, *args, **kwargs)

    return runner
