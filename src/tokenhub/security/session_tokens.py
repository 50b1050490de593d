"""HMAC-based stateless owner session tokens with TTL.

Token format: ``{user_id}:{expires_unix}:{hex_hmac}``

The signing key is the session secret joined with the user's session epoch.
Bumping the epoch ends that user's sessions; regenerating the secret ends
all of them.
Bearer tokens issued to applications are plain alphanumerics and never contain
``:``, which is how the two are told apart.
"""

import hashlib
import hmac
import time

__all__ = [
    "create_session_token",
    "verify_session_token",
    "looks_like_session_token",
    "session_token_subject",
]


def create_session_token(user_id: str, secret: str, ttl_hours: int = 24) -> str:
    """Issue a session token for *user_id* that expires after *ttl_hours*."""
    expires = int(time.time()) + ttl_hours * 3600
    payload = f"{user_id}:{expires}"
    return f"{payload}:{_sign(secret, payload)}"


def verify_session_token(token: str, secret: str) -> str | None:
    """Return the user id if *token* is valid and not expired, else None."""
    parts = token.rsplit(":", 2)
    if len(parts) != 3:
        return None

    user_id, expires_str, sig = parts
    if not user_id:
        return None
    try:
        expires = int(expires_str)
    except ValueError:
        return None

    if time.time() > expires:
        return None

    expected = _sign(secret, f"{user_id}:{expires_str}")
    if not hmac.compare_digest(sig, expected):
        return None
    return user_id


def looks_like_session_token(value: str) -> bool:
    return value.count(":") >= 2


def session_token_subject(token: str) -> str | None:
    """The unverified user id in *token*, used to pick the verification key."""
    parts = token.rsplit(":", 2)
    if len(parts) != 3 or not parts[0]:
        return None
    return parts[0]


def _sign(key: str, message: str) -> str:
    return hmac.new(key.encode(), message.encode(), hashlib.sha256).hexdigest()
