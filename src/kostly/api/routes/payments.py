"""Payment verification endpoint for the admin dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from kostly.api.auth import AdminUser, require_admin
from kostly.domain.verification import InvalidRequestError, VerificationError
from kostly.observability.logging import get_logger
from kostly.observability.redaction import safe_log_context

router = APIRouter(prefix="/api", tags=["payments"])

logger = get_logger(__name__)


@router.post("/verify-payment")
async def verify_payment(
    request: Request,
    admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Accept or reject a payment and notify the tenant.

    Body: {"id": ..., "action": "success" | "rejected", "admin_notes": ...}

    Returns:
        200 with payment summary and per-channel notification outcomes.
        400/404/500 with {"success": false, "error", "reason", "details"?}.
    """
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content=InvalidRequestError("Request body must be valid JSON").to_dict(),
        )

    verifier = request.app.state.services.verifier
    try:
        result = await verifier.verify(body)
    except VerificationError as exc:
        logger.warning(
            "payment verification rejected",
            extra={
                "extra_fields": safe_log_context(
                    reason=exc.reason,
                    status_code=exc.status_code,
                    admin_sub=admin.subject,
                )
            },
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    logger.info(
        "payment verified",
        extra={
            "extra_fields": safe_log_context(
                payment_id=result.payment.id,
                status=result.payment.status,
                attempted=result.dispatch.attempted,
                successful=result.dispatch.successful,
                admin_sub=admin.subject,
            )
        },
    )
    return JSONResponse(status_code=200, content=result.to_dict())
