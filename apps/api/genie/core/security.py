"""Security utilities: password hashing, session tokens and one-time secrets."""

import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from passlib.context import CryptContext

from genie.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# =============================================================================
# Password hashing
# =============================================================================

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================
# Session tokens (JWT in cookie or bearer header)
# =============================================================================

def create_access_token(
    user_id: UUID,
    email: str,
    name: str,
    session_id: UUID,
    expires_hours: int | None = None,
) -> str:
    """
    Create the short-lived access token.

    Always signs with current secret (JWT_SECRET).
    Carries user identity plus the session id used for revocation.
    """
    now = datetime.now(timezone.utc)
    hours = expires_hours if expires_hours is not None else settings.ACCESS_TOKEN_EXPIRES_HOURS
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "sid": str(session_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def create_refresh_token(session_id: UUID) -> str:
    """Create the long-lived refresh token (session id only)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sid": str(session_id),
        "type": REFRESH_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRES_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_token(token: str, expected_type: str) -> dict:
    """
    Decode and verify a session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets or of the wrong type
    """
    last_error: jwt.InvalidTokenError | None = None
    for secret in settings.jwt_secrets:
        try:
            payload = jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
        if payload.get("type") != expected_type:
            raise jwt.InvalidTokenError(f"Expected {expected_type} token")
        return payload
    raise last_error  # type: ignore


# =============================================================================
# One-time secrets (invites, sign-up links)
# =============================================================================

def generate_secret() -> str:
    """Generate cryptographically random secret (32 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(32)
