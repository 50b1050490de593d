# Request gate: bearer-token authentication for third-party routes.
# Created: 2026-10-12
#
# Registered with app.middleware("http"). Everything under PROTECTED_PREFIX
# needs a valid bearer token; the resolved AuthContext is attached to
# request.state.auth for the route and for deps.require_ability().

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from tokenhub.api.deps import extract_bearer
from tokenhub.errors import AuthError, TokenHubError, Unauthenticated

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/api/v1/protected"


def _error_response(error: TokenHubError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def token_gate_middleware(request: Request, call_next):
    path = request.url.path
    if path != PROTECTED_PREFIX and not path.startswith(PROTECTED_PREFIX + "/"):
        return await call_next(request)

    plaintext = extract_bearer(request)
    if not plaintext:
        return _error_response(Unauthenticated("Access token required"))

    from tokenhub.tokens import get_token_service

    try:
        context = get_token_service().authenticate(plaintext)
    except AuthError as e:
        logger.debug("Token rejected on %s: %s", path, e.code)
        return _error_response(e)
    except TokenHubError as e:
        logger.error("Token gate failed on %s: %s", path, e)
        return _error_response(e)

    request.state.auth = context
    return await call_next(request)
