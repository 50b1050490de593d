"""Credential store protocol.

Created: 2026-10-12
Defines the interface for credential storage backends.

Backends own durability and the unique indexes (user email, application
client_id, token hash). Every method is one bounded unit of work: a caller
either sees a mutation fully applied or not at all. Returned records are
copies; mutate them only through the store.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from tokenhub.models import Application, BearerToken, User


@runtime_checkable
class CredentialStoreProtocol(Protocol):
    """Interface implemented by every credential store backend."""

    # =========================================================================
    # Users
    # =========================================================================

    def add_user(self, user: User) -> User:
        """Insert a user. Raises StoreError if the email is taken."""
        ...

    def get_user(self, user_id: str) -> User | None: ...

    def get_user_by_email(self, email: str) -> User | None:
        """Case-insensitive email lookup."""
        ...

    def list_users(self) -> list[User]: ...

    def update_user(self, user_id: str, **changes: Any) -> User | None:
        """Apply *changes*. Raises StoreError if a new email is taken."""
        ...

    def delete_user(self, user_id: str) -> bool:
        """Delete a user with their applications and every token issued to them."""
        ...

    # =========================================================================
    # Applications
    # =========================================================================

    def add_application(self, application: Application) -> Application:
        """Insert an application. Raises StoreError if the client_id is taken."""
        ...

    def get_application(self, application_id: str) -> Application | None: ...

    def get_application_by_client_id(self, client_id: str) -> Application | None: ...

    def client_id_exists(self, client_id: str) -> bool: ...

    def update_application(self, application_id: str, **changes: Any) -> Application | None:
        """Apply *changes* atomically. ``id`` and ``client_id`` are immutable."""
        ...

    def delete_application(self, application_id: str) -> bool:
        """Delete an application and every token issued to it."""
        ...

    def list_applications(self, owner_id: str | None = None) -> list[Application]:
        """Newest first."""
        ...

    # =========================================================================
    # Tokens
    # =========================================================================

    def add_token(self, token: BearerToken) -> BearerToken:
        """Insert a token. Raises StoreError if the hash is already present."""
        ...

    def get_token(self, token_id: str) -> BearerToken | None: ...

    def get_token_by_hash(self, token_hash: str) -> BearerToken | None: ...

    def update_token(self, token_id: str, **changes: Any) -> BearerToken | None:
        """Apply *changes* atomically. ``id`` and ``token_hash`` are immutable."""
        ...

    def mark_token_used(self, token_id: str, used_at: datetime) -> BearerToken | None:
        """Set ``last_used_at`` on a still-active token, leaving ``updated_at`` alone.

        Returns None when the token is gone or no longer active.
        """
        ...

    def update_tokens_where(self, changes: dict[str, Any], **filters: Any) -> int:
        """Apply *changes* to every token matching *filters*. Returns the count."""
        ...

    def list_tokens(
        self,
        application_id: str | None = None,
        user_id: str | None = None,
        active_only: bool = False,
    ) -> list[BearerToken]:
        """Newest first."""
        ...

    def find_prunable_tokens(
        self,
        expired_before: datetime,
        inactive_before: datetime | None,
        limit: int,
    ) -> list[BearerToken]:
        """Tokens that expired before *expired_before*, plus (when given) inactive
        tokens last updated before *inactive_before*. At most *limit* records."""
        ...

    def delete_tokens(self, token_ids: list[str]) -> int:
        """Delete tokens by id. Missing ids are ignored. Returns the count deleted."""
        ...
