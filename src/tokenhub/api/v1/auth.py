# Owner auth router: register, login, sessions, profile, account.
# Created: 2026-10-12
#
# Owners authenticate with stateless HMAC session tokens, presented as
# ``Authorization: Bearer <session token>`` on the management routes.
# Logout and refresh bump the user's session epoch, which ends every
# session the user holds.

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from tokenhub.api.deps import require_user
from tokenhub.api.v1.schemas.auth import (
    AccountDeletedResponse,
    DeleteAccountRequest,
    DeletedUser,
    LoginRequest,
    MeResponse,
    ProfileUpdatedResponse,
    RegisterRequest,
    SessionResponse,
    UpdateProfileRequest,
    UserInfo,
)
from tokenhub.api.v1.schemas.common import MessageResponse
from tokenhub.models import User, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _session_response(user: User, message: str) -> SessionResponse:
    from tokenhub.users import get_user_service

    token, expires_in = get_user_service().issue_session(user)
    return SessionResponse(
        message=message,
        user=UserInfo(**user.to_public_dict()),
        token=token,
        expires_in=expires_in,
    )


@router.post("/auth/register", response_model=SessionResponse, status_code=201)
async def register(body: RegisterRequest):
    """Create an owner account and return a session token."""
    from tokenhub.users import get_user_service

    user = get_user_service().create(body.name, body.email, body.password)
    return _session_response(user, "User registered successfully")


@router.post("/auth/login", response_model=SessionResponse)
async def login(body: LoginRequest):
    from tokenhub.users import get_user_service

    user = get_user_service().authenticate(body.email, body.password)
    return _session_response(user, "Login successful")


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(user: User = Depends(require_user)):
    """End all of the caller's sessions."""
    from tokenhub.users import get_user_service

    get_user_service().end_sessions(user)
    return MessageResponse(message="Logged out successfully")


@router.post("/auth/token/refresh", response_model=SessionResponse)
async def refresh(user: User = Depends(require_user)):
    """Swap the presented session for a fresh one. Older sessions stop working."""
    from tokenhub.users import get_user_service

    user = get_user_service().end_sessions(user)
    return _session_response(user, "Token refreshed successfully")


def describe_user(user: User) -> MeResponse:
    """Public user fields plus application and active-token counts."""
    from tokenhub.registry import get_application_registry
    from tokenhub.tokens import get_token_service

    applications = get_application_registry().store.list_applications(owner_id=user.id)
    return MeResponse(
        **user.to_public_dict(),
        applications_count=len(applications),
        active_tokens_count=get_token_service().count_active(user_id=user.id),
    )


@router.get("/auth/me", response_model=MeResponse)
async def me(user: User = Depends(require_user)):
    return describe_user(user)


@router.put("/auth/profile", response_model=ProfileUpdatedResponse)
async def update_profile(body: UpdateProfileRequest, user: User = Depends(require_user)):
    from tokenhub.users import get_user_service

    updated = get_user_service().update_profile(
        user,
        name=body.name,
        email=body.email,
        password=body.password,
        password_confirmation=body.password_confirmation,
    )
    return ProfileUpdatedResponse(
        message="Profile updated successfully", user=describe_user(updated)
    )


@router.delete("/auth/account", response_model=AccountDeletedResponse)
async def delete_account(body: DeleteAccountRequest, user: User = Depends(require_user)):
    """Delete the caller's account, applications and tokens.

    Needs the current password and ``confirmation: DELETE_MY_ACCOUNT``.
    """
    from tokenhub.users import get_user_service

    revoked = get_user_service().delete_account(user, body.password, body.confirmation)
    return AccountDeletedResponse(
        message="Account deleted successfully",
        deleted_user=DeletedUser(id=user.id, name=user.name, deleted_at=utcnow()),
        tokens_revoked=revoked,
    )
