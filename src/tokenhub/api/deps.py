# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-12

from __future__ import annotations

from fastapi import Request

from tokenhub.errors import InsufficientScope, Unauthenticated
from tokenhub.models import AuthContext, User


def extract_bearer(request: Request) -> str | None:
    """Return the value of ``Authorization: Bearer <value>``, or None."""
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def get_auth_context(request: Request) -> AuthContext:
    """The AuthContext the token gate attached to this request."""
    context = getattr(request.state, "auth", None)
    if context is None:
        raise Unauthenticated("Access token required")
    return context


def require_ability(*abilities: str):
    """FastAPI dependency that checks bearer-token abilities.

    Usage::

        @router.get("/protected/profile", dependencies=[Depends(require_ability("read"))])
        async def profile(...): ...

    The token must hold every listed ability (``*`` holds them all).
    """

    async def _check(request: Request) -> AuthContext:
        context = get_auth_context(request)
        missing = [a for a in abilities if not context.token.can(a)]
        if missing:
            raise InsufficientScope(f"Token missing required ability: {', '.join(missing)}")
        return context

    return _check


def require_user(request: Request) -> User:
    """Resolve the owner session token (``Authorization: Bearer <session>``)."""
    from tokenhub.security.session_tokens import looks_like_session_token
    from tokenhub.users import get_user_service

    value = extract_bearer(request)
    if not value or not looks_like_session_token(value):
        raise Unauthenticated()
    user = get_user_service().resolve_session(value)
    if user is None:
        raise Unauthenticated("Session expired or invalid")
    return user
