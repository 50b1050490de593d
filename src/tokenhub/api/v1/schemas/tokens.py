# Bearer token management schemas.
# Created: 2026-10-12

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CreateTokenRequest(BaseModel):
    name: str | None = None
    abilities: list[str] | None = None
    expires_at: datetime | None = None


class TokenInfo(BaseModel):
    """Token record (the plaintext and its hash are never included)."""

    id: str
    name: str
    application_id: str
    user_id: str
    abilities: list[str]
    state: str
    is_active: bool
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    created_from_ip: str | None = None
    user_agent: str | None = None
    created_at: datetime
    updated_at: datetime


class TokenCreatedResponse(BaseModel):
    """Response when a token is created. ``plaintext_token`` is shown once."""

    message: str
    token: TokenInfo
    plaintext_token: str
    expires_at: datetime | None = None


class TokenResponse(BaseModel):
    token: TokenInfo


class RevokeAllResponse(BaseModel):
    message: str
    revoked_count: int


class TokenStatisticsResponse(BaseModel):
    total_tokens: int
    active_tokens: int
    inactive_tokens: int
    expired_tokens: int
    never_expires_tokens: int
    never_used_tokens: int
    recently_used_tokens: int
    expiring_soon_tokens: int
    by_scope: dict[str, int]
    by_application: dict[str, int]
