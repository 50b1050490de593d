# Application registry: create, authenticate, regenerate secret, toggle, delete.
# Created: 2026-10-12
#
# Client secrets are 64-char random strings shown once (at creation or
# regeneration). Only their SHA-256 digest is stored, and client
# authentication compares digests in constant time. Every failure mode of
# authenticate_client (unknown id, inactive app, wrong secret) raises the same
# InvalidClient so callers cannot tell which part was wrong.

from __future__ import annotations

import logging
from collections.abc import Sequence

from tokenhub.errors import InvalidClient, NotFoundError, StoreError
from tokenhub.models import DEFAULT_RATE_LIMIT, DEFAULT_SCOPES, Application, Page, User
from tokenhub.security.audit import AuditSeverity, get_audit_logger
from tokenhub.security.credentials import (
    generate_client_id,
    generate_secret,
    hash_token,
    is_reserved_client_id,
    secrets_match,
)
from tokenhub.store.protocol import CredentialStoreProtocol
from tokenhub.validation import validate_application_fields

logger = logging.getLogger(__name__)

_CLIENT_ID_ATTEMPTS = 5

# Compared against when the client_id is unknown so both paths hash and compare.
_DUMMY_SECRET_HASH = hash_token("tokenhub-unknown-client")

_UPDATABLE_FIELDS = frozenset(
    {"name", "description", "allowed_scopes", "callback_urls", "rate_limit", "is_active"}
)


def _audit(action: str, target: str, **context) -> None:
    get_audit_logger().log_event(action=action, target=target, **context)


class ApplicationRegistry:
    """Owns application identity: client id/secret, scopes, active flag."""

    def __init__(self, store: CredentialStoreProtocol | None = None):
        if store is None:
            from tokenhub.store.file_store import get_credential_store

            store = get_credential_store()
        self.store = store

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _new_client_id(self) -> str:
        for _ in range(_CLIENT_ID_ATTEMPTS):
            candidate = generate_client_id()
            if not is_reserved_client_id(candidate) and not self.store.client_id_exists(
                candidate
            ):
                return candidate
        raise StoreError("could not allocate a unique client_id")

    def create(
        self,
        owner: User,
        name: str,
        scopes: Sequence[str] | None = None,
        rate_limit: int = DEFAULT_RATE_LIMIT,
        callback_urls: Sequence[str] | None = None,
        description: str | None = None,
    ) -> tuple[Application, str]:
        """Register an application. Returns (application, plaintext_secret).

        The plaintext secret is returned only once; it cannot be retrieved later.
        """
        scopes = list(dict.fromkeys(scopes)) if scopes else list(DEFAULT_SCOPES)
        callback_urls = list(callback_urls or [])
        validate_application_fields(
            name=name,
            description=description,
            scopes=scopes,
            rate_limit=rate_limit,
            callback_urls=callback_urls,
        )

        secret = generate_secret()
        application = Application.new(
            name=name.strip(),
            owner_id=owner.id,
            client_secret_hash=hash_token(secret),
            client_id=self._new_client_id(),
            description=description,
            allowed_scopes=scopes,
            callback_urls=callback_urls,
            rate_limit=rate_limit,
        )
        application = self.store.add_application(application)
        logger.info("Application %s created (client_id=%s)", application.id, application.client_id)
        _audit(
            "application_created",
            f"application:{application.id}",
            actor=f"user:{owner.id}",
            client_id=application.client_id,
            scopes=scopes,
        )
        return application, secret

    # ------------------------------------------------------------------
    # Client authentication
    # ------------------------------------------------------------------

    def authenticate_client(self, client_id: str, client_secret: str) -> Application:
        """Return the active application for these credentials or raise InvalidClient."""
        application = self.store.get_application_by_client_id(client_id) if client_id else None
        expected = application.client_secret_hash if application else _DUMMY_SECRET_HASH
        secret_ok = secrets_match(hash_token(client_secret or ""), expected)

        if application is None or not application.is_active or not secret_ok:
            logger.debug("Client authentication failed for client_id=%s", client_id)
            _audit(
                "client_auth_failed",
                f"client:{client_id}",
                actor=f"client:{client_id}",
                severity=AuditSeverity.ALERT,
            )
            raise InvalidClient()
        return application

    def regenerate_secret(self, application: Application) -> str:
        """Replace the client secret. The old secret stops working immediately."""
        secret = generate_secret()
        updated = self.store.update_application(
            application.id, client_secret_hash=hash_token(secret)
        )
        if updated is None:
            raise NotFoundError()
        _audit(
            "client_secret_regenerated",
            f"application:{application.id}",
            actor=f"user:{application.owner_id}",
            severity=AuditSeverity.WARNING,
        )
        return secret

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    def get(self, application_id: str) -> Application | None:
        return self.store.get_application(application_id)

    def get_owned(self, application_id: str, user: User) -> Application:
        """Return the application if *user* owns it; NotFoundError (403) otherwise."""
        application = self.store.get_application(application_id)
        if application is None or application.owner_id != user.id:
            raise NotFoundError()
        return application

    def list_for_owner(self, owner_id: str, page: int = 1, per_page: int = 10) -> Page[Application]:
        return Page.slice(self.store.list_applications(owner_id=owner_id), page, per_page)

    def update(self, application: Application, **fields) -> Application:
        """Partial update. Unknown fields are ignored; ``None`` means unchanged."""
        changes = {k: v for k, v in fields.items() if k in _UPDATABLE_FIELDS and v is not None}
        if "allowed_scopes" in changes:
            changes["allowed_scopes"] = list(dict.fromkeys(changes["allowed_scopes"])) or list(
                DEFAULT_SCOPES
            )
        validate_application_fields(
            name=changes.get("name"),
            description=changes.get("description"),
            scopes=changes.get("allowed_scopes"),
            rate_limit=changes.get("rate_limit"),
            callback_urls=changes.get("callback_urls"),
            require_name=False,
        )
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if not changes:
            return application
        updated = self.store.update_application(application.id, **changes)
        if updated is None:
            raise NotFoundError()
        return updated

    def set_active(self, application: Application, active: bool) -> Application:
        updated = self.store.update_application(application.id, is_active=active)
        if updated is None:
            raise NotFoundError()
        _audit(
            "application_toggled",
            f"application:{application.id}",
            actor=f"user:{application.owner_id}",
            is_active=active,
        )
        return updated

    def toggle_active(self, application: Application) -> Application:
        current = self.store.get_application(application.id)
        if current is None:
            raise NotFoundError()
        return self.set_active(current, not current.is_active)

    def delete(self, application: Application) -> None:
        """Delete the application and all of its tokens."""
        if not self.store.delete_application(application.id):
            raise NotFoundError()
        logger.info("Application %s deleted", application.id)
        _audit(
            "application_deleted",
            f"application:{application.id}",
            actor=f"user:{application.owner_id}",
            client_id=application.client_id,
        )


# Singleton
_registry: ApplicationRegistry | None = None


def get_application_registry() -> ApplicationRegistry:
    global _registry
    if _registry is None:
        _registry = ApplicationRegistry()
    return _registry


def reset_application_registry() -> None:
    """Reset singleton (for testing)."""
    global _registry
    _registry = None
