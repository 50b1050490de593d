# API tokens router: owner-side token creation, listing, revocation, stats.
# Created: 2026-10-12

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request

from tokenhub.api.deps import require_user
from tokenhub.api.v1.schemas.common import MessageResponse, Paginated
from tokenhub.api.v1.schemas.tokens import (
    CreateTokenRequest,
    RevokeAllResponse,
    TokenCreatedResponse,
    TokenInfo,
    TokenResponse,
    TokenStatisticsResponse,
)
from tokenhub.models import BearerToken, User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["API Tokens"])


def _info(token: BearerToken) -> TokenInfo:
    from tokenhub.tokens import get_token_service

    state = token.state(get_token_service().now())
    return TokenInfo(**token.to_public_dict(), state=state.value)


@router.get(
    "/applications/{application_id}/tokens", response_model=Paginated[TokenInfo]
)
async def list_application_tokens(
    application_id: str,
    page: int = Query(1, ge=1),
    user: User = Depends(require_user),
):
    """Tokens issued to one of the owner's applications, newest first."""
    from tokenhub.config import get_settings
    from tokenhub.registry import get_application_registry
    from tokenhub.tokens import get_token_service

    application = get_application_registry().get_owned(application_id, user)
    result = get_token_service().list_for_application(
        application, page, get_settings().per_page
    )
    return Paginated[TokenInfo].from_page(result, _info)


@router.post(
    "/applications/{application_id}/tokens",
    response_model=TokenCreatedResponse,
    status_code=201,
)
async def create_application_token(
    application_id: str,
    body: CreateTokenRequest,
    request: Request,
    user: User = Depends(require_user),
):
    """Create a token for one of the owner's applications.

    Abilities must all be allowed by the application. The plaintext token is
    returned only once.
    """
    from tokenhub.registry import get_application_registry
    from tokenhub.tokens import get_token_service

    application = get_application_registry().get_owned(application_id, user)
    plaintext, token = get_token_service().create_for_application(
        application,
        user,
        name=body.name,
        abilities=body.abilities,
        expires_at=body.expires_at,
        created_from_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return TokenCreatedResponse(
        message="API token created successfully.",
        token=_info(token),
        plaintext_token=plaintext,
        expires_at=token.expires_at,
    )


@router.get("/api-tokens", response_model=Paginated[TokenInfo])
async def list_user_tokens(
    page: int = Query(1, ge=1),
    active_only: bool = Query(False),
    user: User = Depends(require_user),
):
    from tokenhub.config import get_settings
    from tokenhub.tokens import get_token_service

    result = get_token_service().list_for_user(
        user, page, get_settings().per_page, active_only=active_only
    )
    return Paginated[TokenInfo].from_page(result, _info)


@router.post("/api-tokens/revoke-all", response_model=RevokeAllResponse)
async def revoke_all_tokens(user: User = Depends(require_user)):
    from tokenhub.tokens import get_token_service

    count = get_token_service().revoke_all_for_user(user)
    return RevokeAllResponse(
        message=f"Successfully revoked {count} API tokens.", revoked_count=count
    )


@router.get("/api-tokens/statistics", response_model=TokenStatisticsResponse)
async def token_statistics(user: User = Depends(require_user)):
    from tokenhub.tokens import get_token_service

    return TokenStatisticsResponse(**get_token_service().statistics(user_id=user.id).to_dict())


@router.get("/api-tokens/{token_id}", response_model=TokenResponse)
async def get_token(token_id: str, user: User = Depends(require_user)):
    from tokenhub.tokens import get_token_service

    return TokenResponse(token=_info(get_token_service().get_owned(token_id, user)))


@router.delete("/api-tokens/{token_id}", response_model=MessageResponse)
async def revoke_token(token_id: str, user: User = Depends(require_user)):
    """Revoke (deactivate) a token. Revoking twice is not an error."""
    from tokenhub.tokens import get_token_service

    service = get_token_service()
    service.revoke(service.get_owned(token_id, user))
    return MessageResponse(message="API token revoked successfully.")
