"""TokenHub data models.

Created: 2026-10-12

- User: owner of applications and tokens
- Application: registered third-party client (client id + hashed secret)
- BearerToken: issued credential, stored only as its SHA-256 hash
- AuthContext: what the request gate attaches to an authenticated request

Design notes:
- Dataclasses with explicit ``to_dict``/``from_dict`` for the JSON store
- Timestamps are timezone-aware datetimes in memory, ISO 8601 on disk
- Identity fields are filled by the ``new()`` factories, never implicitly
- Secrets and hashes are excluded from ``to_public_dict()``
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from tokenhub.security.credentials import generate_client_id

T = TypeVar("T")

DEFAULT_SCOPES: tuple[str, ...] = ("read",)
DEFAULT_RATE_LIMIT = 1000  # requests per hour


# ============================================================================
# Helper Functions
# ============================================================================


def generate_id() -> str:
    """Generate a unique record ID."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


def _dump_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def epoch(value: datetime | None) -> int | None:
    return int(value.timestamp()) if value else None


# ============================================================================
# Enums
# ============================================================================


class TokenState(str, Enum):
    """Bearer token lifecycle state."""

    ACTIVE = "active"  # is_active and not past expires_at
    EXPIRED = "expired"  # is_active but past expires_at; authentication fails
    REVOKED = "revoked"  # is_active is False; terminal


# ============================================================================
# Data Models
# ============================================================================


@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str | None = None
    # Bumped on logout/refresh; session tokens are signed with it.
    session_epoch: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(cls, name: str, email: str, password_hash: str | None = None) -> User:
        return cls(
            id=generate_id(),
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.to_public_dict()
        data["password_hash"] = self.password_hash
        data["session_epoch"] = self.session_epoch
        return data

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": _dump_dt(self.created_at),
            "updated_at": _dump_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        created_at = _load_dt(data.get("created_at")) or utcnow()
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data["email"],
            password_hash=data.get("password_hash"),
            session_epoch=data.get("session_epoch", 0),
            created_at=created_at,
            updated_at=_load_dt(data.get("updated_at")) or created_at,
        )


@dataclass
class Application:
    """
    A registered third-party application.

    Attributes:
        id: Internal record id
        client_id: Public UUID, unique and immutable
        client_secret_hash: SHA-256 of the client secret (plaintext is never stored)
        owner_id: User who registered the application
        allowed_scopes: Upper bound for abilities of tokens issued to this app
        callback_urls: Absolute http(s) URLs, order preserved
        rate_limit: Requests per hour (informational)
        is_active: Disabled applications cannot obtain or use tokens
    """

    id: str
    name: str
    owner_id: str
    client_id: str
    client_secret_hash: str
    description: str | None = None
    allowed_scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    callback_urls: list[str] = field(default_factory=list)
    rate_limit: int = DEFAULT_RATE_LIMIT
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        name: str,
        owner_id: str,
        client_secret_hash: str,
        *,
        client_id: str | None = None,
        description: str | None = None,
        allowed_scopes: Sequence[str] | None = None,
        callback_urls: Sequence[str] | None = None,
        rate_limit: int = DEFAULT_RATE_LIMIT,
    ) -> Application:
        return cls(
            id=generate_id(),
            name=name,
            owner_id=owner_id,
            client_id=client_id or generate_client_id(),
            client_secret_hash=client_secret_hash,
            description=description,
            allowed_scopes=list(allowed_scopes) if allowed_scopes else list(DEFAULT_SCOPES),
            callback_urls=list(callback_urls or []),
            rate_limit=rate_limit,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.to_public_dict()
        data["client_secret_hash"] = self.client_secret_hash
        return data

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "client_id": self.client_id,
            "allowed_scopes": list(self.allowed_scopes),
            "callback_urls": list(self.callback_urls),
            "rate_limit": self.rate_limit,
            "is_active": self.is_active,
            "created_at": _dump_dt(self.created_at),
            "updated_at": _dump_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Application:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            owner_id=data["owner_id"],
            client_id=data["client_id"],
            client_secret_hash=data["client_secret_hash"],
            description=data.get("description"),
            allowed_scopes=data.get("allowed_scopes") or list(DEFAULT_SCOPES),
            callback_urls=data.get("callback_urls") or [],
            rate_limit=data.get("rate_limit", DEFAULT_RATE_LIMIT),
            is_active=data.get("is_active", True),
            created_at=_load_dt(data.get("created_at")) or utcnow(),
            updated_at=_load_dt(data.get("updated_at")) or utcnow(),
        )


@dataclass
class BearerToken:
    """
    An issued bearer token.

    Only ``token_hash`` is stored; the plaintext is returned once by the issuer.
    Usable iff ``is_active`` and (``expires_at`` is None or in the future).
    """

    id: str
    name: str
    token_hash: str
    application_id: str
    user_id: str
    abilities: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    expires_at: datetime | None = None
    last_used_at: datetime | None = None
    is_active: bool = True
    created_from_ip: str | None = None
    user_agent: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        name: str,
        token_hash: str,
        application_id: str,
        user_id: str,
        abilities: Sequence[str],
        *,
        expires_at: datetime | None = None,
        created_from_ip: str | None = None,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> BearerToken:
        created = now or utcnow()
        return cls(
            id=generate_id(),
            name=name,
            token_hash=token_hash,
            application_id=application_id,
            user_id=user_id,
            abilities=list(abilities),
            expires_at=expires_at,
            created_from_ip=created_from_ip,
            user_agent=user_agent,
            created_at=created,
            updated_at=created,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())

    def is_usable(self, now: datetime | None = None) -> bool:
        return self.is_active and not self.is_expired(now)

    def state(self, now: datetime | None = None) -> TokenState:
        if not self.is_active:
            return TokenState.REVOKED
        if self.is_expired(now):
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    def can(self, ability: str) -> bool:
        """True iff the token holds *ability* or the ``*`` wildcard."""
        return "*" in self.abilities or ability in self.abilities

    def to_dict(self) -> dict[str, Any]:
        data = self.to_public_dict()
        data["token_hash"] = self.token_hash
        return data

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "application_id": self.application_id,
            "user_id": self.user_id,
            "abilities": list(self.abilities),
            "expires_at": _dump_dt(self.expires_at),
            "last_used_at": _dump_dt(self.last_used_at),
            "is_active": self.is_active,
            "created_from_ip": self.created_from_ip,
            "user_agent": self.user_agent,
            "created_at": _dump_dt(self.created_at),
            "updated_at": _dump_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BearerToken:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            token_hash=data["token_hash"],
            application_id=data["application_id"],
            user_id=data["user_id"],
            abilities=data.get("abilities") or list(DEFAULT_SCOPES),
            expires_at=_load_dt(data.get("expires_at")),
            last_used_at=_load_dt(data.get("last_used_at")),
            is_active=data.get("is_active", True),
            created_from_ip=data.get("created_from_ip"),
            user_agent=data.get("user_agent"),
            created_at=_load_dt(data.get("created_at")) or utcnow(),
            updated_at=_load_dt(data.get("updated_at")) or utcnow(),
        )


@dataclass(frozen=True)
class AuthContext:
    """Resolved identity for a request authenticated with a bearer token.

    Built once by the request gate; read-only afterwards.
    """

    token: BearerToken
    application: Application
    user: User


@dataclass
class Page(Generic[T]):
    """One page of a newest-first listing."""

    items: list[T]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @classmethod
    def slice(cls, items: list[T], page: int, per_page: int) -> Page[T]:
        page = max(1, page)
        start = (page - 1) * per_page
        return cls(
            items=items[start : start + per_page], total=len(items), page=page, per_page=per_page
        )
