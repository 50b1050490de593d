# Token Service: issue, authenticate, revoke, list, statistics, prune.
# Created: 2026-10-12
#
# Bearer tokens are 64-char random strings. Only their SHA-256 digest is
# stored; the plaintext is returned once by issue()/create_for_application().
# Expiry is evaluated lazily against the injected clock, so nothing has to run
# in the background for a token to stop working.

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from tokenhub.errors import (
    ApplicationDisabled,
    InvalidToken,
    NotFoundError,
    ScopeError,
    StoreError,
    TokenExpired,
    ValidationError,
)
from tokenhub.models import (
    DEFAULT_SCOPES,
    Application,
    AuthContext,
    BearerToken,
    Page,
    User,
    utcnow,
)
from tokenhub.security.audit import AuditSeverity, get_audit_logger
from tokenhub.security.credentials import generate_secret, hash_token
from tokenhub.store.protocol import CredentialStoreProtocol
from tokenhub.validation import validate_token_fields

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)
EXPIRING_SOON_WINDOW = timedelta(days=7)

_UNBOUNDED = 2**31

Clock = Callable[[], datetime]


def grant_scopes(requested: Sequence[str], allowed: Sequence[str]) -> list[str]:
    """Intersect *requested* with *allowed*, keeping the requested order."""
    allowed_set = set(allowed)
    return [s for s in dict.fromkeys(requested) if s in allowed_set]


@dataclass
class TokenStatistics:
    total: int = 0
    active: int = 0
    inactive: int = 0
    expired: int = 0
    never_expires: int = 0
    never_used: int = 0
    recently_used: int = 0
    expiring_soon: int = 0
    by_scope: dict[str, int] = field(default_factory=dict)
    by_application: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_tokens": self.total,
            "active_tokens": self.active,
            "inactive_tokens": self.inactive,
            "expired_tokens": self.expired,
            "never_expires_tokens": self.never_expires,
            "never_used_tokens": self.never_used,
            "recently_used_tokens": self.recently_used,
            "expiring_soon_tokens": self.expiring_soon,
            "by_scope": dict(self.by_scope),
            "by_application": dict(self.by_application),
        }


@dataclass
class PruneResult:
    expired: int = 0
    inactive: int = 0
    deleted: int = 0
    batches: int = 0
    dry_run: bool = False

    @property
    def matched(self) -> int:
        return self.expired + self.inactive


class TokenService:
    """Issues bearer tokens and resolves them back to an AuthContext."""

    def __init__(
        self,
        store: CredentialStoreProtocol | None = None,
        clock: Clock | None = None,
    ):
        if store is None:
            from tokenhub.store.file_store import get_credential_store

            store = get_credential_store()
        self.store = store
        self._clock = clock or utcnow

    def now(self) -> datetime:
        return self._clock()

    def _audit(self, action: str, target: str, **context: Any) -> None:
        get_audit_logger().log_event(action=action, target=target, **context)

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _persist_new(
        self,
        application: Application,
        user: User,
        name: str,
        abilities: list[str],
        expires_at: datetime | None,
        created_from_ip: str | None,
        user_agent: str | None,
    ) -> tuple[str, BearerToken]:
        plaintext = generate_secret()
        token = BearerToken.new(
            name=name,
            token_hash=hash_token(plaintext),
            application_id=application.id,
            user_id=user.id,
            abilities=abilities,
            expires_at=expires_at,
            created_from_ip=created_from_ip,
            user_agent=user_agent,
            now=self.now(),
        )
        token = self.store.add_token(token)
        logger.info("Token %s issued to application %s", token.id, application.id)
        self._audit(
            "token_issued",
            f"token:{token.id}",
            actor=f"user:{user.id}",
            application_id=application.id,
            abilities=abilities,
        )
        return plaintext, token

    def issue(
        self,
        application: Application,
        requested_scopes: Sequence[str],
        user: User,
        ttl: timedelta | None,
        *,
        name: str | None = None,
        created_from_ip: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[str, BearerToken]:
        """Issue a token for *user* through *application*. Returns (plaintext, record).

        Granted abilities are the requested scopes the application allows; an
        empty result raises ScopeError. ``ttl=None`` issues a non-expiring token.
        """
        requested = list(requested_scopes) or list(DEFAULT_SCOPES)
        granted = grant_scopes(requested, application.allowed_scopes)
        if not granted:
            raise ScopeError()
        expires_at = self.now() + ttl if ttl is not None else None
        return self._persist_new(
            application,
            user,
            name or f"OAuth Token for {application.name}",
            granted,
            expires_at,
            created_from_ip,
            user_agent,
        )

    def create_for_application(
        self,
        application: Application,
        user: User,
        name: str,
        abilities: list[str],
        expires_at: datetime | None = None,
        created_from_ip: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[str, BearerToken]:
        """Owner-created token. Abilities must all be allowed by the application."""
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        validate_token_fields(
            name=name,
            abilities=abilities,
            allowed_scopes=application.allowed_scopes,
            expires_at=expires_at,
            now=self.now(),
        )
        return self._persist_new(
            application,
            user,
            name.strip(),
            list(dict.fromkeys(abilities)),
            expires_at,
            created_from_ip,
            user_agent,
        )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, plaintext: str) -> AuthContext:
        """Resolve a bearer token to its (token, application, user).

        Raises InvalidToken, TokenExpired or ApplicationDisabled.
        """
        if not plaintext:
            raise InvalidToken()
        token = self.store.get_token_by_hash(hash_token(plaintext))
        if token is None or not token.is_active:
            raise InvalidToken()

        now = self.now()
        if token.is_expired(now):
            raise TokenExpired()

        application = self.store.get_application(token.application_id)
        if application is None:
            raise InvalidToken()
        if not application.is_active:
            raise ApplicationDisabled()

        user = self.store.get_user(token.user_id)
        if user is None:
            raise InvalidToken()

        # Rechecks is_active under the store lock: a revoke that landed after
        # the lookup above wins. A failed usage write must not fail the request.
        try:
            updated = self.store.mark_token_used(token.id, now)
        except StoreError as e:
            logger.warning("Could not record last use of token %s: %s", token.id, e.detail)
        else:
            if updated is None:
                raise InvalidToken()
            token = updated

        return AuthContext(token=token, application=application, user=user)

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def revoke(self, token: BearerToken) -> bool:
        """Deactivate *token*. Idempotent; always reports success."""
        if token.is_active:
            self.store.update_token(token.id, is_active=False, updated_at=self.now())
            self._audit(
                "token_revoked",
                f"token:{token.id}",
                actor=f"user:{token.user_id}",
                severity=AuditSeverity.WARNING,
            )
        return True

    def revoke_plaintext(self, plaintext: str) -> bool:
        """Revoke by plaintext. Unknown tokens are ignored; always True."""
        token = self.store.get_token_by_hash(hash_token(plaintext)) if plaintext else None
        if token is not None:
            self.revoke(token)
        return True

    def revoke_all_for_user(self, user: User) -> int:
        count = self.store.update_tokens_where(
            {"is_active": False}, user_id=user.id, is_active=True
        )
        if count:
            self._audit(
                "tokens_revoked_all",
                f"user:{user.id}",
                actor=f"user:{user.id}",
                severity=AuditSeverity.WARNING,
                count=count,
            )
        return count

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_owned(self, token_id: str, user: User) -> BearerToken:
        token = self.store.get_token(token_id)
        if token is None or token.user_id != user.id:
            raise NotFoundError()
        return token

    def count_active(self, user_id: str | None = None, application_id: str | None = None) -> int:
        now = self.now()
        tokens = self.store.list_tokens(
            application_id=application_id, user_id=user_id, active_only=True
        )
        return sum(1 for t in tokens if t.is_usable(now))

    def list_for_application(
        self, application: Application, page: int = 1, per_page: int = 10
    ) -> Page[BearerToken]:
        return Page.slice(self.store.list_tokens(application_id=application.id), page, per_page)

    def list_for_user(
        self, user: User, page: int = 1, per_page: int = 10, active_only: bool = False
    ) -> Page[BearerToken]:
        tokens = self.store.list_tokens(user_id=user.id, active_only=active_only)
        return Page.slice(tokens, page, per_page)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def statistics(
        self, user_id: str | None = None, application_id: str | None = None
    ) -> TokenStatistics:
        now = self.now()
        tokens = self.store.list_tokens(application_id=application_id, user_id=user_id)
        stats = TokenStatistics(total=len(tokens))
        scopes: Counter[str] = Counter()
        applications: Counter[str] = Counter()

        for token in tokens:
            applications[token.application_id] += 1
            scopes.update(token.abilities)
            if token.is_active:
                stats.active += 1
            else:
                stats.inactive += 1
            if token.expires_at is None:
                stats.never_expires += 1
            elif token.expires_at <= now:
                stats.expired += 1
            elif token.is_active and token.expires_at <= now + EXPIRING_SOON_WINDOW:
                stats.expiring_soon += 1
            if token.last_used_at is None:
                stats.never_used += 1
            elif token.last_used_at >= now - RECENT_WINDOW:
                stats.recently_used += 1

        stats.by_scope = dict(scopes.most_common())
        stats.by_application = dict(applications.most_common())
        return stats

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def prune(
        self,
        retention_days: int = 30,
        include_inactive: bool = False,
        batch_size: int = 100,
        dry_run: bool = False,
    ) -> PruneResult:
        """Delete tokens expired more than *retention_days* ago.

        With *include_inactive*, also revoked tokens not touched for that long.
        Works in batches; safe to re-run after a partial failure.
        """
        errors: dict[str, list[str]] = {}
        if retention_days < 0:
            errors["retention_days"] = ["The retention must be 0 days or more."]
        if batch_size < 1:
            errors["batch_size"] = ["The batch size must be at least 1."]
        if errors:
            raise ValidationError(errors)

        cutoff = self.now() - timedelta(days=retention_days)
        inactive_before = cutoff if include_inactive else None
        result = PruneResult(dry_run=dry_run)

        if dry_run:
            candidates = self.store.find_prunable_tokens(cutoff, inactive_before, limit=_UNBOUNDED)
            for token in candidates:
                if token.expires_at is not None and token.expires_at < cutoff:
                    result.expired += 1
                else:
                    result.inactive += 1
            return result

        while True:
            batch = self.store.find_prunable_tokens(cutoff, inactive_before, limit=batch_size)
            if not batch:
                break
            for token in batch:
                if token.expires_at is not None and token.expires_at < cutoff:
                    result.expired += 1
                else:
                    result.inactive += 1
            result.deleted += self.store.delete_tokens([t.id for t in batch])
            result.batches += 1
            logger.debug("Pruned batch %d (%d tokens)", result.batches, len(batch))

        if result.deleted:
            logger.info("Pruned %d tokens in %d batches", result.deleted, result.batches)
            self._audit(
                "tokens_pruned",
                "tokens",
                expired=result.expired,
                inactive=result.inactive,
                deleted=result.deleted,
            )
        return result


# Singleton
_service: TokenService | None = None


def get_token_service() -> TokenService:
    global _service
    if _service is None:
        _service = TokenService()
    return _service


def reset_token_service() -> None:
    """Reset singleton (for testing)."""
    global _service
    _service = None
