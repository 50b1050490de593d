# Bearer-gated routes for third-party applications.
# Created: 2026-10-12
#
# Requests only reach these handlers after token_gate_middleware has
# authenticated the bearer token and set request.state.auth.

from __future__ import annotations

from fastapi import APIRouter, Depends

from tokenhub.api.deps import get_auth_context, require_ability
from tokenhub.api.v1.auth import describe_user
from tokenhub.api.v1.schemas.auth import AuthenticatedUserResponse, ProfileResponse, UserSummary
from tokenhub.models import AuthContext

router = APIRouter(tags=["Protected"])


@router.get("/protected/user", response_model=AuthenticatedUserResponse)
async def authenticated_user(context: AuthContext = Depends(get_auth_context)):
    user = context.user
    return AuthenticatedUserResponse(user=UserSummary(id=user.id, name=user.name, email=user.email))


@router.get("/protected/profile", response_model=ProfileResponse)
async def user_profile(context: AuthContext = Depends(require_ability("read"))):
    """Profile of the token's user. Needs the ``read`` ability."""
    return ProfileResponse(profile=describe_user(context.user))
