# User accounts: registration, password login, profile, sessions.
# Created: 2026-10-12

from __future__ import annotations

import logging

from tokenhub.errors import AuthError, StoreError, ValidationError
from tokenhub.models import User
from tokenhub.security.audit import AuditSeverity, get_audit_logger
from tokenhub.security.credentials import hash_password, verify_password
from tokenhub.store.protocol import CredentialStoreProtocol
from tokenhub.validation import MAX_NAME_LENGTH, normalize_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
DELETE_CONFIRMATION = "DELETE_MY_ACCOUNT"

_EMAIL_TAKEN = "The email has already been taken."

# Unknown emails are checked against this so login takes the same time either way.
_DUMMY_PASSWORD_HASH = hash_password("tokenhub-unknown-user")


def _check_name(name: str | None, errors: dict[str, list[str]]) -> None:
    if not name or not name.strip():
        errors["name"] = ["The name is required."]
    elif len(name.strip()) > MAX_NAME_LENGTH:
        errors["name"] = [f"The name may not be greater than {MAX_NAME_LENGTH} characters."]


def _check_password(
    password: str, errors: dict[str, list[str]], confirmation: str | None = None
) -> None:
    messages = []
    if len(password) < MIN_PASSWORD_LENGTH:
        messages.append(f"The password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if confirmation is not None and confirmation != password:
        messages.append("The password confirmation does not match.")
    if messages:
        errors["password"] = messages


class UserService:
    def __init__(self, store: CredentialStoreProtocol | None = None):
        if store is None:
            from tokenhub.store.file_store import get_credential_store

            store = get_credential_store()
        self.store = store

    def create(self, name: str, email: str, password: str | None = None) -> User:
        """Create a user. ``password=None`` makes an account that cannot log in."""
        errors: dict[str, list[str]] = {}
        _check_name(name, errors)
        normalized = normalize_email(email)
        if normalized is None:
            errors["email"] = ["A valid email address is required."]
        elif self.store.get_user_by_email(normalized) is not None:
            errors["email"] = [_EMAIL_TAKEN]
        if password is not None:
            _check_password(password, errors)
        if errors:
            raise ValidationError(errors)

        user = User.new(
            name=name.strip(),
            email=normalized,
            password_hash=hash_password(password) if password is not None else None,
        )
        try:
            user = self.store.add_user(user)
        except StoreError:
            # Lost a race with a concurrent registration for the same email.
            if self.store.get_user_by_email(normalized) is not None:
                raise ValidationError({"email": [_EMAIL_TAKEN]}) from None
            raise
        logger.info("User %s created", user.id)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user for these credentials or raise AuthError."""
        user = self.store.get_user_by_email(email or "")
        encoded = user.password_hash if user and user.password_hash else _DUMMY_PASSWORD_HASH
        password_ok = verify_password(password or "", encoded)
        if user is None or not user.password_hash or not password_ok:
            logger.debug("Login failed for %s", email)
            raise AuthError("Invalid credentials")
        return user

    def get(self, user_id: str) -> User | None:
        return self.store.get_user(user_id)

    def resolve(self, identifier: str) -> User | None:
        """Look a user up by email (if it contains ``@``) or by id."""
        if "@" in identifier:
            return self.store.get_user_by_email(identifier)
        return self.store.get_user(identifier)

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(
        self,
        user: User,
        *,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
        password_confirmation: str | None = None,
    ) -> User:
        """Change any of name, email and password. ``None`` leaves a field as-is."""
        errors: dict[str, list[str]] = {}
        changes: dict = {}
        if name is not None:
            _check_name(name, errors)
            changes["name"] = name.strip()
        if email is not None:
            normalized = normalize_email(email)
            if normalized is None:
                errors["email"] = ["A valid email address is required."]
            else:
                holder = self.store.get_user_by_email(normalized)
                if holder is not None and holder.id != user.id:
                    errors["email"] = [_EMAIL_TAKEN]
                changes["email"] = normalized
        if password is not None:
            _check_password(password, errors, confirmation=password_confirmation or "")
        if errors:
            raise ValidationError(errors)
        if password is not None:
            changes["password_hash"] = hash_password(password)
        if not changes:
            return user

        try:
            updated = self.store.update_user(user.id, **changes)
        except StoreError:
            if "email" in changes and self.store.get_user_by_email(changes["email"]):
                raise ValidationError({"email": [_EMAIL_TAKEN]}) from None
            raise
        if updated is None:
            raise AuthError("Session expired or invalid")
        logger.info("User %s updated %s", user.id, ", ".join(sorted(changes)))
        return updated

    def delete_account(self, user: User, password: str, confirmation: str) -> int:
        """Delete *user* after re-checking the password.

        Active tokens issued to the user are revoked first, then the user is
        deleted along with their applications and tokens. Returns the number
        of tokens that were still active.
        """
        if confirmation != DELETE_CONFIRMATION:
            raise ValidationError(
                {"confirmation": [f"The confirmation must be {DELETE_CONFIRMATION}."]}
            )
        if not verify_password(password or "", user.password_hash or _DUMMY_PASSWORD_HASH):
            raise AuthError("Invalid password")

        revoked = self.store.update_tokens_where(
            {"is_active": False}, user_id=user.id, is_active=True
        )
        self.store.delete_user(user.id)
        get_audit_logger().log_event(
            action="account_deleted",
            target=f"user:{user.id}",
            actor=f"user:{user.id}",
            severity=AuditSeverity.WARNING,
            tokens_revoked=revoked,
        )
        logger.info("User %s deleted (%d active tokens revoked)", user.id, revoked)
        return revoked

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @staticmethod
    def _session_key(user: User) -> str:
        from tokenhub.config import get_session_secret

        return f"{get_session_secret()}:{user.session_epoch}"

    def issue_session(self, user: User) -> tuple[str, int]:
        """Return ``(session_token, expires_in_seconds)`` for *user*."""
        from tokenhub.config import get_settings
        from tokenhub.security.session_tokens import create_session_token

        ttl_hours = get_settings().session_token_ttl_hours
        token = create_session_token(user.id, self._session_key(user), ttl_hours=ttl_hours)
        return token, ttl_hours * 3600

    def resolve_session(self, token: str) -> User | None:
        """The user a valid, unexpired session token belongs to, else None."""
        from tokenhub.security.session_tokens import session_token_subject, verify_session_token

        user_id = session_token_subject(token)
        user = self.store.get_user(user_id) if user_id else None
        if user is None:
            return None
        if verify_session_token(token, self._session_key(user)) != user.id:
            return None
        return user

    def end_sessions(self, user: User) -> User:
        """Invalidate every outstanding session token of *user*."""
        current = self.store.get_user(user.id)
        if current is None:
            raise AuthError("Session expired or invalid")
        updated = self.store.update_user(user.id, session_epoch=current.session_epoch + 1)
        if updated is None:
            raise AuthError("Session expired or invalid")
        return updated


# Singleton
_service: UserService | None = None


def get_user_service() -> UserService:
    global _service
    if _service is None:
        _service = UserService()
    return _service


def reset_user_service() -> None:
    """Reset singleton (for testing)."""
    global _service
    _service = None
