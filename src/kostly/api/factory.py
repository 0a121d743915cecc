"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI, Request, Response

from kostly.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from kostly.services import Services, build_services

from .routers import public
from .routes import notifications, payments, whatsapp_status


def create_app(services: Services | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        services: Prebuilt services (tests inject fakes). Built from the
            environment when omitted.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Kostly",
        docs_url=None,
        redoc_url=None,
    )
    app.state.services = services or build_services()

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    app.include_router(public.router)
    app.include_router(payments.router)
    app.include_router(notifications.router)
    app.include_router(whatsapp_status.router)

    return app
