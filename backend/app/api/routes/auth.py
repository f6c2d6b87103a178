"""Auth Routes: sign in, sign out, current identity.

Invariants:
    - POST /session returns a fresh bearer token bound to the signed-in identity
    - DELETE /session revokes the caller's token; live views bound to it go unauthenticated
    - GET /me returns 401 without a valid token

Design Decisions:
    - The request body is the profile the OAuth provider returned; the OAuth dance itself
      happens outside this service
"""

import logging

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_provider, require_identity
from app.core.domain_types import Identity
from app.infrastructure.sql_provider import SqlCapabilityProvider
from app.schemas.auth import IdentityResponse, SessionResponse, SignInRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/session", response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_in(
    body: SignInRequest,
    provider: SqlCapabilityProvider = Depends(get_provider),
):
    identity = await provider.sign_in(
        body.email, body.display_name, body.avatar_url,
    )
    return SessionResponse(
        access_token=provider.token,
        identity=IdentityResponse.from_domain(identity),
    )


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(provider: SqlCapabilityProvider = Depends(get_provider)):
    await provider.sign_out()


@router.get("/me", response_model=IdentityResponse)
async def current_identity(identity: Identity = Depends(require_identity)):
    return IdentityResponse.from_domain(identity)
