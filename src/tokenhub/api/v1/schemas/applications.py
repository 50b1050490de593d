# Application schemas.
# Created: 2026-10-12

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CreateApplicationRequest(BaseModel):
    name: str
    description: str | None = None
    allowed_scopes: list[str] | None = None
    callback_urls: list[str] | None = None
    rate_limit: int = 1000


class UpdateApplicationRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = None
    description: str | None = None
    allowed_scopes: list[str] | None = None
    callback_urls: list[str] | None = None
    rate_limit: int | None = None
    is_active: bool | None = None


class ApplicationInfo(BaseModel):
    """Application details (the client secret is never included)."""

    id: str
    name: str
    description: str | None = None
    client_id: str
    allowed_scopes: list[str]
    callback_urls: list[str]
    rate_limit: int
    is_active: bool
    active_tokens_count: int | None = None
    created_at: datetime
    updated_at: datetime


class ApplicationResponse(BaseModel):
    message: str | None = None
    application: ApplicationInfo


class ApplicationCreatedResponse(ApplicationResponse):
    """Response when an application is registered. The secret is shown once."""

    client_secret: str


class SecretResponse(BaseModel):
    message: str
    client_id: str
    client_secret: str


class ToggleResponse(BaseModel):
    message: str
    is_active: bool
