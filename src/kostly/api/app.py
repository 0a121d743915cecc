"""ASGI entrypoint (uvicorn kostly.api.app:app)."""

from kostly.api.factory import create_app

app = create_app()
