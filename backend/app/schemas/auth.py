"""Auth Schemas: sign-in request and identity responses.

Invariants:
    - SignInRequest.email is stripped, lowercased and must contain "@"
    - display_name prefers full_name, then name (the OAuth profile fields)
"""

from pydantic import BaseModel, Field, field_validator

from app.core.domain_types import Identity
from app.core.format_bookmark import display_name


class SignInRequest(BaseModel):
    """Profile handed over by the identity provider after its OAuth callback."""
    email: str = Field(min_length=3, max_length=320)
    full_name: str | None = Field(None, max_length=200)
    name: str | None = Field(None, max_length=200)
    avatar_url: str | None = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v

    @property
    def display_name(self) -> str | None:
        return (self.full_name or "").strip() or (self.name or "").strip() or None


class IdentityResponse(BaseModel):
    id: str
    email: str | None = None
    avatar_url: str | None = None
    display_name: str

    @classmethod
    def from_domain(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            email=identity.email,
            avatar_url=identity.avatar_url,
            display_name=display_name(identity),
        )


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    identity: IdentityResponse
