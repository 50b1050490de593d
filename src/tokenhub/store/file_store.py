"""File-based credential store.

Created: 2026-10-12
Implements CredentialStoreProtocol using JSON files.

Storage layout:
<config dir>/data/
    users.json          # All users
    applications.json   # All applications (client secret stored as SHA-256)
    tokens.json         # All bearer tokens (plaintext never stored)

Design notes:
- Single JSON file per entity type
- In-memory indexes for id / client_id / token hash / email lookups
- One re-entrant lock serializes every read and write, so a concurrent
  revoke and authenticate never observe a half-applied update
- Atomic writes using temp file + rename; memory is only updated after the
  file write succeeds, so a failed write leaves the previous state intact
- Suitable for small deployments (< 10k records per type)
"""

import dataclasses
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from tokenhub.errors import StoreError
from tokenhub.models import Application, BearerToken, User, utcnow

logger = logging.getLogger(__name__)

_IMMUTABLE_APPLICATION_FIELDS = frozenset({"id", "client_id", "owner_id", "created_at"})
_IMMUTABLE_TOKEN_FIELDS = frozenset({"id", "token_hash", "application_id", "created_at"})


class FileCredentialStore:
    """JSON-file implementation of the credential store."""

    def __init__(self, base_path: Path | None = None):
        """Initialize the store.

        Args:
            base_path: Directory for storage files. Defaults to <config dir>/data/
        """
        if base_path is None:
            from tokenhub.config import get_config_dir

            base_path = get_config_dir() / "data"

        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

        self._users_file = self.base_path / "users.json"
        self._applications_file = self.base_path / "applications.json"
        self._tokens_file = self.base_path / "tokens.json"

        self._lock = threading.RLock()

        # Primary maps
        self._users: dict[str, User] = {}
        self._applications: dict[str, Application] = {}
        self._tokens: dict[str, BearerToken] = {}

        # Secondary indexes
        self._email_index: dict[str, str] = {}  # email -> user id
        self._client_index: dict[str, str] = {}  # client_id -> application id
        self._hash_index: dict[str, str] = {}  # token hash -> token id

        self._load_all()

    # =========================================================================
    # File I/O Helpers
    # =========================================================================

    def _load_json(self, path: Path) -> list[dict[str, Any]]:
        """Load a JSON file, returning empty list if not found."""
        if not path.exists():
            return []
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading %s: %s", path, e)
            return []

    def _save_json(self, path: Path, data: list[dict[str, Any]]) -> None:
        """Save data to JSON file atomically. Raises StoreError on failure."""
        temp_path = path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.chmod(0o600)
            temp_path.replace(path)
        except OSError as e:
            logger.error("Error saving %s: %s", path, e)
            if temp_path.exists():
                temp_path.unlink()
            raise StoreError(f"failed to write {path.name}: {e}") from e

    def _load_all(self) -> None:
        """Load all data from files into memory."""
        for data in self._load_json(self._users_file):
            user = User.from_dict(data)
            self._users[user.id] = user
            self._email_index[user.email.lower()] = user.id

        for data in self._load_json(self._applications_file):
            app = Application.from_dict(data)
            self._applications[app.id] = app
            self._client_index[app.client_id] = app.id

        for data in self._load_json(self._tokens_file):
            token = BearerToken.from_dict(data)
            self._tokens[token.id] = token
            self._hash_index[token.token_hash] = token.id

        logger.info(
            "Credential store loaded: %d users, %d applications, %d tokens",
            len(self._users),
            len(self._applications),
            len(self._tokens),
        )

    def _persist_users(self, users: dict[str, User]) -> None:
        self._save_json(self._users_file, [u.to_dict() for u in users.values()])

    def _persist_applications(self, applications: dict[str, Application]) -> None:
        self._save_json(self._applications_file, [a.to_dict() for a in applications.values()])

    def _persist_tokens(self, tokens: dict[str, BearerToken]) -> None:
        self._save_json(self._tokens_file, [t.to_dict() for t in tokens.values()])

    @staticmethod
    def _copy(record):
        return dataclasses.replace(record) if record is not None else None

    # =========================================================================
    # Users
    # =========================================================================

    def add_user(self, user: User) -> User:
        with self._lock:
            email = user.email.lower()
            if email in self._email_index:
                raise StoreError(f"duplicate email {email}")
            users = {**self._users, user.id: self._copy(user)}
            self._persist_users(users)
            self._users = users
            self._email_index[email] = user.id
            return self._copy(user)

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            return self._copy(self._users.get(user_id))

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._email_index.get(email.strip().lower())
            return self._copy(self._users.get(user_id)) if user_id else None

    def list_users(self) -> list[User]:
        with self._lock:
            return [self._copy(u) for u in self._users.values()]

    def update_user(self, user_id: str, **changes: Any) -> User | None:
        if {"id", "created_at"} & changes.keys():
            raise ValueError("Immutable user fields: id, created_at")
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return None
            updated = dataclasses.replace(current, **changes, updated_at=utcnow())
            old_email, new_email = current.email.lower(), updated.email.lower()
            if new_email != old_email and new_email in self._email_index:
                raise StoreError(f"duplicate email {new_email}")
            users = {**self._users, user_id: updated}
            self._persist_users(users)
            self._users = users
            if new_email != old_email:
                self._email_index.pop(old_email, None)
                self._email_index[new_email] = user_id
            return self._copy(updated)

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return False
            owned = {a.id for a in self._applications.values() if a.owner_id == user_id}
            doomed = [
                t
                for t in self._tokens.values()
                if t.user_id == user_id or t.application_id in owned
            ]
            doomed_ids = {t.id for t in doomed}
            # Same order as delete_application: dependants before their parent.
            if doomed:
                tokens = {k: v for k, v in self._tokens.items() if k not in doomed_ids}
                self._persist_tokens(tokens)
                self._tokens = tokens
                for token in doomed:
                    self._hash_index.pop(token.token_hash, None)
            if owned:
                removed = [self._applications[i] for i in owned]
                applications = {k: v for k, v in self._applications.items() if k not in owned}
                self._persist_applications(applications)
                self._applications = applications
                for app in removed:
                    self._client_index.pop(app.client_id, None)
            users = {k: v for k, v in self._users.items() if k != user_id}
            self._persist_users(users)
            self._users = users
            self._email_index.pop(user.email.lower(), None)
            return True

    # =========================================================================
    # Applications
    # =========================================================================

    def add_application(self, application: Application) -> Application:
        with self._lock:
            if application.client_id in self._client_index:
                raise StoreError(f"duplicate client_id {application.client_id}")
            applications = {**self._applications, application.id: self._copy(application)}
            self._persist_applications(applications)
            self._applications = applications
            self._client_index[application.client_id] = application.id
            return self._copy(application)

    def get_application(self, application_id: str) -> Application | None:
        with self._lock:
            return self._copy(self._applications.get(application_id))

    def get_application_by_client_id(self, client_id: str) -> Application | None:
        with self._lock:
            app_id = self._client_index.get(client_id)
            return self._copy(self._applications.get(app_id)) if app_id else None

    def client_id_exists(self, client_id: str) -> bool:
        with self._lock:
            return client_id in self._client_index

    def update_application(self, application_id: str, **changes: Any) -> Application | None:
        blocked = _IMMUTABLE_APPLICATION_FIELDS & changes.keys()
        if blocked:
            raise ValueError(f"Immutable application fields: {sorted(blocked)}")
        with self._lock:
            current = self._applications.get(application_id)
            if current is None:
                return None
            updated = dataclasses.replace(current, **changes, updated_at=utcnow())
            applications = {**self._applications, application_id: updated}
            self._persist_applications(applications)
            self._applications = applications
            return self._copy(updated)

    def delete_application(self, application_id: str) -> bool:
        with self._lock:
            app = self._applications.get(application_id)
            if app is None:
                return False
            doomed = [t for t in self._tokens.values() if t.application_id == application_id]
            tokens = {k: v for k, v in self._tokens.items() if v.application_id != application_id}
            applications = {k: v for k, v in self._applications.items() if k != application_id}
            # Tokens first: a crash in between leaves an application with no tokens,
            # never tokens pointing at a missing application.
            if doomed:
                self._persist_tokens(tokens)
                self._tokens = tokens
                for token in doomed:
                    self._hash_index.pop(token.token_hash, None)
            self._persist_applications(applications)
            self._applications = applications
            self._client_index.pop(app.client_id, None)
            return True

    def list_applications(self, owner_id: str | None = None) -> list[Application]:
        with self._lock:
            apps = [
                self._copy(a)
                for a in self._applications.values()
                if owner_id is None or a.owner_id == owner_id
            ]
        apps.sort(key=lambda a: a.created_at, reverse=True)
        return apps

    # =========================================================================
    # Tokens
    # =========================================================================

    def add_token(self, token: BearerToken) -> BearerToken:
        with self._lock:
            if token.token_hash in self._hash_index:
                raise StoreError("duplicate token hash")
            tokens = {**self._tokens, token.id: self._copy(token)}
            self._persist_tokens(tokens)
            self._tokens = tokens
            self._hash_index[token.token_hash] = token.id
            return self._copy(token)

    def get_token(self, token_id: str) -> BearerToken | None:
        with self._lock:
            return self._copy(self._tokens.get(token_id))

    def get_token_by_hash(self, token_hash: str) -> BearerToken | None:
        with self._lock:
            token_id = self._hash_index.get(token_hash)
            return self._copy(self._tokens.get(token_id)) if token_id else None

    def update_token(self, token_id: str, **changes: Any) -> BearerToken | None:
        blocked = _IMMUTABLE_TOKEN_FIELDS & changes.keys()
        if blocked:
            raise ValueError(f"Immutable token fields: {sorted(blocked)}")
        with self._lock:
            current = self._tokens.get(token_id)
            if current is None:
                return None
            changes.setdefault("updated_at", utcnow())
            updated = dataclasses.replace(current, **changes)
            tokens = {**self._tokens, token_id: updated}
            self._persist_tokens(tokens)
            self._tokens = tokens
            return self._copy(updated)

    def mark_token_used(self, token_id: str, used_at: datetime) -> BearerToken | None:
        with self._lock:
            current = self._tokens.get(token_id)
            if current is None or not current.is_active:
                return None
            # updated_at stays as-is; it is the revocation clock for pruning.
            updated = dataclasses.replace(current, last_used_at=used_at)
            tokens = {**self._tokens, token_id: updated}
            self._persist_tokens(tokens)
            self._tokens = tokens
            return self._copy(updated)

    def update_tokens_where(self, changes: dict[str, Any], **filters: Any) -> int:
        blocked = _IMMUTABLE_TOKEN_FIELDS & changes.keys()
        if blocked:
            raise ValueError(f"Immutable token fields: {sorted(blocked)}")
        with self._lock:
            now = utcnow()
            tokens = dict(self._tokens)
            count = 0
            for token_id, token in self._tokens.items():
                if all(getattr(token, k) == v for k, v in filters.items()):
                    tokens[token_id] = dataclasses.replace(token, **changes, updated_at=now)
                    count += 1
            if count:
                self._persist_tokens(tokens)
                self._tokens = tokens
            return count

    def list_tokens(
        self,
        application_id: str | None = None,
        user_id: str | None = None,
        active_only: bool = False,
    ) -> list[BearerToken]:
        with self._lock:
            tokens = [
                self._copy(t)
                for t in self._tokens.values()
                if (application_id is None or t.application_id == application_id)
                and (user_id is None or t.user_id == user_id)
                and (not active_only or t.is_active)
            ]
        tokens.sort(key=lambda t: t.created_at, reverse=True)
        return tokens

    def find_prunable_tokens(
        self,
        expired_before: datetime,
        inactive_before: datetime | None,
        limit: int,
    ) -> list[BearerToken]:
        found: list[BearerToken] = []
        with self._lock:
            for token in self._tokens.values():
                if len(found) >= limit:
                    break
                expired = token.expires_at is not None and token.expires_at < expired_before
                stale_inactive = (
                    inactive_before is not None
                    and not token.is_active
                    and token.updated_at < inactive_before
                )
                if expired or stale_inactive:
                    found.append(self._copy(token))
        return found

    def delete_tokens(self, token_ids: list[str]) -> int:
        with self._lock:
            doomed = [self._tokens[i] for i in set(token_ids) if i in self._tokens]
            if not doomed:
                return 0
            doomed_ids = {t.id for t in doomed}
            tokens = {k: v for k, v in self._tokens.items() if k not in doomed_ids}
            self._persist_tokens(tokens)
            self._tokens = tokens
            for token in doomed:
                self._hash_index.pop(token.token_hash, None)
            return len(doomed)


# Singleton
_store: FileCredentialStore | None = None


def get_credential_store() -> FileCredentialStore:
    global _store
    if _store is None:
        _store = FileCredentialStore()
    return _store


def reset_credential_store() -> None:
    """Reset singleton (for testing)."""
    global _store
    _store = None
