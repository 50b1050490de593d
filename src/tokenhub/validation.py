# Input validation for applications and tokens.
# Created: 2026-10-12
#
# Validators return error messages instead of raising so callers can collect
# every field's problems into one ValidationError.

from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from datetime import datetime
from urllib.parse import urlsplit

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tokenhub.errors import ValidationError

# Valid token abilities / application scopes
AVAILABLE_SCOPES = frozenset(
    {
        "read",
        "write",
        "delete",
        "admin",
        "user:read",
        "user:write",
        "application:read",
        "application:write",
        "token:read",
        "token:write",
        "token:delete",
    }
)

_BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0"})

MAX_NAME_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000
MIN_RATE_LIMIT = 1
MAX_RATE_LIMIT = 10_000

_email_adapter = TypeAdapter(EmailStr)


def parse_scope_string(scope: str | None) -> list[str]:
    """Split a space-separated scope string, dropping duplicates but keeping order."""
    if not scope:
        return []
    return list(dict.fromkeys(scope.split()))


def invalid_scopes(scopes: Iterable[str]) -> list[str]:
    return sorted({s for s in scopes if s not in AVAILABLE_SCOPES})


def normalize_email(value: str | None) -> str | None:
    """Validated, lower-cased email address, or None if *value* is not one."""
    if not value:
        return None
    try:
        return _email_adapter.validate_python(value.strip()).lower()
    except PydanticValidationError:
        return None


def validate_callback_url(url: str) -> str | None:
    """Return an error message if *url* is not an acceptable callback URL."""
    if not isinstance(url, str) or not url.strip():
        return "must be a valid URL"
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
    except ValueError:
        return "must be a valid URL"

    if parts.scheme not in ("http", "https"):
        return "must use http or https protocol"
    if not host.rstrip("."):
        return "must be a valid URL"
    host = host.lower().rstrip(".")
    if host in _BLOCKED_HOSTS or host.endswith(".localhost"):
        return "cannot use localhost or private IP addresses"

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        address = None
    if address is not None and (
        address.is_private
        or address.is_reserved
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_multicast
    ):
        return "cannot use private or reserved IP addresses"

    if parts.fragment or url.endswith("#"):
        return "cannot contain URL fragments"
    return None


def validate_application_fields(
    *,
    name: str | None = None,
    description: str | None = None,
    scopes: Iterable[str] | None = None,
    rate_limit: int | None = None,
    callback_urls: Iterable[str] | None = None,
    require_name: bool = True,
) -> None:
    """Raise ValidationError listing every invalid field."""
    errors: dict[str, list[str]] = {}

    if name is None or not str(name).strip():
        if require_name or name is not None:
            errors.setdefault("name", []).append("The application name is required.")
    elif len(name) > MAX_NAME_LENGTH:
        errors.setdefault("name", []).append(
            f"The name may not be greater than {MAX_NAME_LENGTH} characters."
        )

    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        errors.setdefault("description", []).append(
            f"The description may not be greater than {MAX_DESCRIPTION_LENGTH} characters."
        )

    if scopes is not None:
        bad = invalid_scopes(scopes)
        if bad:
            errors.setdefault("allowed_scopes", []).append(
                f"Invalid scope(s): {', '.join(bad)}. "
                f"Available scopes: {', '.join(sorted(AVAILABLE_SCOPES))}."
            )

    if rate_limit is not None and not (MIN_RATE_LIMIT <= rate_limit <= MAX_RATE_LIMIT):
        errors.setdefault("rate_limit", []).append(
            f"Rate limit must be between {MIN_RATE_LIMIT} and {MAX_RATE_LIMIT} requests per hour."
        )

    if callback_urls is not None:
        for index, url in enumerate(callback_urls):
            problem = validate_callback_url(url)
            if problem:
                errors.setdefault(f"callback_urls.{index}", []).append(
                    f"The callback URL {problem}."
                )

    if errors:
        raise ValidationError(errors)


def validate_token_fields(
    *,
    name: str | None,
    abilities: list[str] | None,
    allowed_scopes: Iterable[str],
    expires_at: datetime | None,
    now: datetime,
) -> None:
    """Validate an owner's token-creation request against its application."""
    errors: dict[str, list[str]] = {}

    if not name or not name.strip():
        errors.setdefault("name", []).append("The token name is required.")
    elif len(name) > MAX_NAME_LENGTH:
        errors.setdefault("name", []).append(
            f"The name may not be greater than {MAX_NAME_LENGTH} characters."
        )

    if not abilities:
        errors.setdefault("abilities", []).append("At least one ability must be specified.")
    else:
        bad = invalid_scopes(abilities)
        if bad:
            errors.setdefault("abilities", []).append(
                f"Invalid ability: {', '.join(bad)}. "
                f"Available abilities: {', '.join(sorted(AVAILABLE_SCOPES))}."
            )
        allowed = set(allowed_scopes)
        not_allowed = [a for a in dict.fromkeys(abilities) if a not in allowed]
        if not_allowed:
            errors.setdefault("abilities", []).append(
                "The following abilities are not allowed for this application: "
                + ", ".join(not_allowed)
            )

    if expires_at is not None and expires_at <= now:
        errors.setdefault("expires_at", []).append("The expiration date must be in the future.")

    if errors:
        raise ValidationError(errors)
