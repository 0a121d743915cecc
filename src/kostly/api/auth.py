"""Admin authentication for the dashboard API.

Admin sessions are Supabase JWTs (HS256, signed with the project JWT secret).

Provides:
- verify_token(): Validates JWT and returns the admin identity
- require_admin(): FastAPI dependency for admin-only routes
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import jwt
from fastapi import HTTPException, Request

DEFAULT_AUDIENCE = "authenticated"


@dataclass
class AdminUser:
    """Authenticated admin context."""

    subject: str
    email: str | None


def _get_settings() -> dict[str, str | list[str] | None]:
    """Load auth settings from environment."""
    emails_raw = os.environ.get("ADMIN_EMAILS", "")
    admin_emails: list[str] | None = None
    if emails_raw:
        admin_emails = [e.strip().lower() for e in emails_raw.split(",") if e.strip()]

    return {
        "secret": os.environ.get("SUPABASE_JWT_SECRET"),
        "audience": os.environ.get("ADMIN_JWT_AUDIENCE", DEFAULT_AUDIENCE),
        "admin_emails": admin_emails,
    }


def verify_token(token: str) -> AdminUser:
    """Verify JWT and return the admin identity.

    Raises:
        HTTPException: 401 if token is invalid, 403 if not an allowed admin.
    """
    settings = _get_settings()
    secret = settings.get("secret")
    if not secret:
        raise HTTPException(status_code=401, detail="Auth not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=settings.get("audience"),
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    email = payload.get("email")
    admin_emails = settings.get("admin_emails")
    if admin_emails and (not email or email.lower() not in admin_emails):
        raise HTTPException(status_code=403, detail="Forbidden")

    return AdminUser(subject=payload["sub"], email=email)


def _extract_bearer_token(request: Request) -> str:
    """Extract Bearer token from Authorization header.

    Raises:
        HTTPException: 401 if header missing or malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    return parts[1]


def require_admin(request: Request) -> AdminUser:
    """FastAPI dependency: authenticated admin or 401/403."""
    return verify_token(_extract_bearer_token(request))
