# OAuth router: client-credentials token, verify, revoke.
# Created: 2026-10-12
#
# All three endpoints accept a JSON body or form-encoded fields. Errors use
# the {"error", "error_description"} envelope via the TokenHubError handler.

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Request

from tokenhub.api.deps import extract_bearer
from tokenhub.api.v1.schemas.auth import UserSummary
from tokenhub.api.v1.schemas.common import MessageResponse
from tokenhub.api.v1.schemas.oauth import TokenRequest, TokenResponse, VerifyResponse
from tokenhub.errors import (
    ApplicationDisabled,
    AuthError,
    InvalidGrant,
    InvalidRequest,
    InvalidToken,
    TokenExpired,
)
from tokenhub.models import epoch

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth"])

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_params(request: Request) -> dict[str, str]:
    """Request parameters from a JSON object or a form body."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            data: Any = await request.json()
        except ValueError:
            raise InvalidRequest(description="Malformed JSON body") from None
        if not isinstance(data, dict):
            raise InvalidRequest(description="Expected a JSON object")
        # Scalars only; user_id may arrive as a JSON number.
        return {
            k: str(v)
            for k, v in data.items()
            if isinstance(v, str | int) and not isinstance(v, bool)
        }
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        return {k: v for k, v in form.items() if isinstance(v, str)}
    return {}


def _client_meta(request: Request) -> dict[str, str | None]:
    return {
        "created_from_ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


@router.post("/oauth/token", response_model=TokenResponse)
async def issue_token(request: Request):
    """Issue a bearer token to an authenticated client.

    The token acts for ``user_id`` when given, else for the application owner.
    Granted scope is the requested scope (default ``read``) intersected with
    the application's allowed scopes.
    """
    from tokenhub.config import get_settings
    from tokenhub.registry import get_application_registry
    from tokenhub.tokens import get_token_service
    from tokenhub.users import get_user_service
    from tokenhub.validation import parse_scope_string

    body = TokenRequest.model_validate(await _read_params(request))
    missing = {
        field: [f"The {field} field is required."]
        for field in ("client_id", "client_secret")
        if not getattr(body, field)
    }
    if missing:
        raise InvalidRequest(missing)

    application = get_application_registry().authenticate_client(
        body.client_id, body.client_secret
    )
    user = get_user_service().get(body.user_id or application.owner_id)
    if user is None:
        raise InvalidGrant()

    ttl_seconds = get_settings().token_ttl_seconds
    plaintext, token = get_token_service().issue(
        application,
        parse_scope_string(body.scope) or ["read"],
        user,
        timedelta(seconds=ttl_seconds),
        **_client_meta(request),
    )
    return TokenResponse(
        access_token=plaintext,
        expires_in=ttl_seconds,
        scope=" ".join(token.abilities),
        created_at=epoch(token.created_at),
    )


@router.post("/oauth/verify", response_model=VerifyResponse)
async def verify_token(request: Request):
    """Check a bearer token (header or ``token`` field) and describe it."""
    from tokenhub.tokens import get_token_service

    plaintext = extract_bearer(request) or (await _read_params(request)).get("token")
    if not plaintext:
        raise InvalidRequest(description="No token provided")

    try:
        context = get_token_service().authenticate(plaintext)
    except TokenExpired:
        raise InvalidToken("Token has expired") from None
    except ApplicationDisabled as e:
        raise InvalidToken(e.description) from None
    except AuthError:
        raise InvalidToken("Token not found or inactive") from None

    token, user = context.token, context.user
    return VerifyResponse(
        user_id=user.id,
        client_id=context.application.client_id,
        scope=" ".join(token.abilities),
        expires_at=epoch(token.expires_at),
        user=UserSummary(id=user.id, name=user.name, email=user.email),
    )


@router.post("/oauth/revoke", response_model=MessageResponse)
async def revoke_token(request: Request):
    """Revoke a token. Unknown tokens are reported as revoked too."""
    from tokenhub.tokens import get_token_service

    plaintext = extract_bearer(request) or (await _read_params(request)).get("token")
    if not plaintext:
        raise InvalidRequest(description="No token provided")

    get_token_service().revoke_plaintext(plaintext)
    return MessageResponse(message="Token revoked successfully")
