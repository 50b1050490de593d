# Owner auth schemas.
# Created: 2026-10-12

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    """Public user fields (no password hash)."""

    id: str
    name: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionResponse(BaseModel):
    """Session token issued on register/login."""

    message: str
    user: UserInfo
    token: str
    token_type: str = "Bearer"
    expires_in: int


class MeResponse(UserInfo):
    applications_count: int
    active_tokens_count: int


class UserSummary(BaseModel):
    id: str
    name: str
    email: str


class AuthenticatedUserResponse(BaseModel):
    user: UserSummary


class ProfileResponse(BaseModel):
    profile: MeResponse


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    password: str | None = None
    password_confirmation: str | None = None


class ProfileUpdatedResponse(BaseModel):
    message: str
    user: MeResponse


class DeleteAccountRequest(BaseModel):
    password: str
    confirmation: str


class DeletedUser(BaseModel):
    id: str
    name: str
    deleted_at: datetime


class AccountDeletedResponse(BaseModel):
    message: str
    deleted_user: DeletedUser
    tokens_revoked: int
