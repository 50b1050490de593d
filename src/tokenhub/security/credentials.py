"""Secret generation and one-way hashing for client secrets and bearer tokens.

Plaintext secrets are only ever handed back to the caller once; everything
persisted is a SHA-256 hex digest. Digest comparison is constant-time.
Owner passwords are bcrypt hashes managed by passlib.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import string
import uuid

from passlib.context import CryptContext

__all__ = [
    "SECRET_LENGTH",
    "RESERVED_CLIENT_IDS",
    "generate_secret",
    "generate_client_id",
    "hash_token",
    "secrets_match",
    "is_uuid",
    "is_reserved_client_id",
    "hash_password",
    "verify_password",
]

SECRET_LENGTH = 64

# 62 symbols -> ~5.95 bits/char, so 64 chars carry ~381 bits.
_ALPHABET = string.ascii_letters + string.digits

RESERVED_CLIENT_IDS = frozenset(
    {
        "00000000-0000-0000-0000-000000000000",
        "11111111-1111-1111-1111-111111111111",
        "system-reserved-id",
        "test-client-id",
    }
)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def generate_secret(length: int = SECRET_LENGTH) -> str:
    """Return *length* random alphanumeric characters from the OS CSPRNG."""
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_client_id() -> str:
    return str(uuid.uuid4())


def hash_token(value: str) -> str:
    """SHA-256 hex digest (64 chars) of *value*."""
    return hashlib.sha256(value.encode()).hexdigest()


def secrets_match(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


def is_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def is_reserved_client_id(value: str) -> bool:
    return value.lower() in RESERVED_CLIENT_IDS


def hash_password(password: str) -> str:
    """bcrypt hash of an owner password."""
    return pwd_context.hash(password)


def verify_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        return pwd_context.verify(password, encoded)
    except ValueError:
        # Unrecognised or malformed hash.
        return False
