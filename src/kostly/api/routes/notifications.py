"""Notification channel diagnostics (admin only). Never exposes secrets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from kostly.api.auth import AdminUser, require_admin

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/channels")
def get_channels(request: Request, _admin: AdminUser = Depends(require_admin)) -> dict:
    """Report which notification channels are configured."""
    dispatcher = request.app.state.services.dispatcher
    timeouts = dispatcher.timeouts
    return {
        "whatsapp": {
            "provider": "twilio",
            "configured": dispatcher.whatsapp.configured,
            "timeout_seconds": timeouts["whatsapp"],
        },
        "email": {
            "provider": "resend",
            "configured": dispatcher.email.configured,
            "timeout_seconds": timeouts["email"],
        },
    }
