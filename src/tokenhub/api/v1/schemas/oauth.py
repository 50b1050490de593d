# OAuth token endpoint schemas.
# Created: 2026-10-12

from __future__ import annotations

from pydantic import BaseModel

from tokenhub.api.v1.schemas.auth import UserSummary


class TokenRequest(BaseModel):
    """Client-credentials token request. Accepted as JSON or form fields."""

    client_id: str | None = None
    client_secret: str | None = None
    scope: str | None = None
    user_id: str | None = None


class TokenResponse(BaseModel):
    access_token: str  # Plaintext, only shown here
    token_type: str = "Bearer"
    expires_in: int | None
    scope: str
    created_at: int  # epoch seconds


class VerifyResponse(BaseModel):
    valid: bool = True
    user_id: str
    client_id: str
    scope: str
    expires_at: int | None = None  # epoch seconds
    user: UserSummary
