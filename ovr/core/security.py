"""Security utilities for bearer tokens and shared-access tokens.

Bearer tokens are JWTs issued by the hospital identity provider; this module
only decodes them (``create_access_token`` exists for tooling and tests).

Shared-access tokens are opaque: 64 hex characters with no embedded claims.
Every bit of state (resource scope, status, expiry) lives on the invitation
row, so a token is only meaningful together with the row it was issued for.
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from ovr.core.config import settings
from ovr.utils.time import as_utc, utc_now

SHARED_ACCESS_TOKEN_BYTES = 32


def create_access_token(
    subject: str | int,
    roles: list[str] | None = None,
    email: str | None = None,
    expires_delta: timedelta | None = None,
    additional_claims: dict | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        subject: The subject of the token (user ID)
        roles: Application role keys held by the subject
        email: Email address of the subject
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(subject),
        "type": "access",
        "roles": list(roles or []),
        "exp": now + expires_delta,
        "iat": now,
    }
    if email:
        to_encode["email"] = email

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT access token.

    Args:
        token: The JWT token string

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


# --- Shared access tokens ---


def generate_access_token() -> str:
    """Generate a cryptographically secure opaque access token (64 hex chars)."""
    return secrets.token_hex(SHARED_ACCESS_TOKEN_BYTES)


def create_token_expiration(days_from_now: int | None = None) -> datetime:
    """Return the expiration timestamp for a new shared-access token."""
    if days_from_now is None:
        days_from_now = settings.shared_access_token_ttl_days
    return utc_now() + timedelta(days=days_from_now)


def generate_shared_access_token(
    days_valid: int | None = None,
) -> tuple[str, datetime]:
    """Generate a token together with its default expiration.

    Returns:
        Tuple of (token, expires_at)
    """
    return generate_access_token(), create_token_expiration(days_valid)


def constant_time_compare(a: str | None, b: str | None) -> bool:
    """Compare two tokens without leaking timing information."""
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def is_token_expired(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """Check whether a token expiration timestamp has passed.

    A missing expiration never expires. Naive datetimes (as returned by
    SQLite) are interpreted as UTC.
    """
    if expires_at is None:
        return False

    return as_utc(expires_at) <= (now or utc_now())


def validate_token(
    provided_token: str | None,
    stored_token: str | None,
    expires_at: datetime | None,
    now: datetime | None = None,
) -> bool:
    """Validate a provided token against the stored token and its expiry.

    Status checks belong to the caller; this only covers the token itself.
    """
    if not constant_time_compare(provided_token, stored_token):
        return False

    return not is_token_expired(expires_at, now)
