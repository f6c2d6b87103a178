"""API Dependencies: access token extraction and per-request capability provider.

Invariants:
    - Token comes from "Authorization: Bearer <token>" first, then ?access_token=
    - One SqlCapabilityProvider per request (FastAPI caches the dependency per request)
    - require_identity raises UnauthenticatedError before any record operation

Design Decisions:
    - Query-string token accepted because browser EventSource cannot set headers
    - Singletons read through get_db_manager()/get_change_feed() at call time so test
      fixtures can swap them
"""

from datetime import timedelta

from fastapi import Depends, Header, Query

from app.config import get_settings
from app.core.domain_types import Identity
from app.core.errors import UnauthenticatedError
from app.infrastructure.change_feed import get_change_feed
from app.infrastructure.database import get_db_manager
from app.infrastructure.sql_provider import SqlCapabilityProvider


def get_access_token(
    authorization: str | None = Header(None),
    access_token: str | None = Query(None),
) -> str | None:
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return access_token or None


def get_provider(
    token: str | None = Depends(get_access_token),
) -> SqlCapabilityProvider:
    settings = get_settings()
    return SqlCapabilityProvider(
        get_db_manager(),
        get_change_feed(),
        token,
        token_ttl=timedelta(hours=settings.auth_token_ttl_hours),
    )


async def require_identity(
    provider: SqlCapabilityProvider = Depends(get_provider),
) -> Identity:
    identity = await provider.get_current_identity()
    if identity is None:
        raise UnauthenticatedError()
    return identity
