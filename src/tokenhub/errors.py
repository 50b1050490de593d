# Error taxonomy for TokenHub.
# Created: 2026-10-12
#
# Every error carries a machine-readable ``code``, an HTTP ``status_code`` and a
# client-safe ``description``. The API layer turns them into
# {"error": code, "error_description": description} responses; nothing else
# about the cause reaches the client.

from __future__ import annotations


class TokenHubError(Exception):
    """Base class for all TokenHub errors."""

    code = "server_error"
    status_code = 500
    description = "An unexpected error occurred"

    def __init__(self, description: str | None = None):
        if description is not None:
            self.description = description
        super().__init__(self.description)

    def to_dict(self) -> dict:
        return {"error": self.code, "error_description": self.description}


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class ValidationError(TokenHubError):
    """Malformed input. Carries per-field messages."""

    code = "validation_error"
    status_code = 422
    description = "Validation failed"

    def __init__(
        self,
        errors: dict[str, list[str]] | None = None,
        description: str | None = None,
    ):
        self.errors = errors or {}
        super().__init__(description)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class InvalidRequest(ValidationError):
    code = "invalid_request"
    status_code = 400
    description = "The request is missing required parameters"


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthError(TokenHubError):
    code = "unauthorized"
    status_code = 401
    description = "Authentication failed"


class Unauthenticated(AuthError):
    description = "Authentication required"


class InvalidClient(AuthError):
    code = "invalid_client"
    description = "Client authentication failed"


class InvalidGrant(AuthError):
    code = "invalid_grant"
    status_code = 400
    description = "The user could not be found"


class InvalidToken(AuthError):
    code = "invalid_token"
    description = "The access token provided is invalid"


class TokenExpired(AuthError):
    code = "token_expired"
    description = "The access token has expired"


class ApplicationDisabled(AuthError):
    code = "application_disabled"
    status_code = 403
    description = "The application is currently disabled"


# ---------------------------------------------------------------------------
# Authorization / lookup
# ---------------------------------------------------------------------------


class ScopeError(TokenHubError):
    code = "invalid_scope"
    status_code = 400
    description = "The requested scope is invalid"


class InsufficientScope(ScopeError):
    code = "insufficient_scope"
    status_code = 403
    description = "The access token lacks the required ability"


class NotFoundError(TokenHubError):
    # 403, not 404: callers must not learn whether someone else's record exists.
    code = "not_found"
    status_code = 403
    description = "This action is unauthorized"


class StoreError(TokenHubError):
    """Persistence failure. Logged server-side, surfaced as a generic 500."""

    code = "server_error"
    status_code = 500
    description = "An unexpected error occurred"

    def __init__(self, detail: str = ""):
        # ``detail`` is for logs only; ``description`` stays generic.
        self.detail = detail
        Exception.__init__(self, detail or self.description)
