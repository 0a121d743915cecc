"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without an alembic context.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

SQLALCHEMY_SCHEME = "postgresql+psycopg2://"


def _parse_libpq_dsn(dsn: str) -> dict[str, str]:
    """Parse a libpq key=value DSN; values may be single-quoted with \\ escapes."""
    tokens: dict[str, str] = {}
    i, n = 0, len(dsn)
    while i < n:
        if dsn[i] == " ":
            i += 1
            continue
        eq = dsn.find("=", i)
        if eq == -1:
            break
        key = dsn[i:eq].strip()
        i = eq + 1
        value: list[str] = []
        if i < n and dsn[i] == "'":
            i += 1
            while i < n and dsn[i] != "'":
                if dsn[i] == "\\" and i + 1 < n:
                    i += 1
                value.append(dsn[i])
                i += 1
            i += 1
        else:
            while i < n and dsn[i] != " ":
                value.append(dsn[i])
                i += 1
        tokens[key] = "".join(value)
    return tokens


def _libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    A host starting with "/" is a unix socket directory and goes into the
    query string; anything else becomes HOST:PORT.
    """
    tokens = _parse_libpq_dsn(dsn)
    if not tokens.get("password"):
        tokens["password"] = os.environ.get("DB_PASSWORD", "")

    user = quote_plus(tokens.get("user", ""))
    password = quote_plus(tokens.get("password", ""))
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    if host.startswith("/"):
        return f"{SQLALCHEMY_SCHEME}{user}:{password}@/{dbname}?host={quote_plus(host)}"
    return f"{SQLALCHEMY_SCHEME}{user}:{password}@{host}:{port}/{dbname}"


def _normalize_url(url: str) -> str:
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = SQLALCHEMY_SCHEME + url[len(prefix):]
    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url


def _get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" in url:
        return _normalize_url(url)
    return _libpq_dsn_to_url(url)
