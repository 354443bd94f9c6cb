"""FastAPI dependencies for authentication, CSRF and database access."""

import logging
from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from genie.core.exceptions import ForbiddenError, UnauthorizedError
from genie.core.security import ACCESS_TOKEN_TYPE, REFRESH_TOKEN_TYPE, decode_token
from genie.db.session import SessionLocal
from genie.schemas.auth import CurrentUser

logger = logging.getLogger(__name__)


# Cookie and header names
ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    One session per request. Anything that escapes the endpoint rolls
    the session back so a failed operation never partially applies.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _extract_access_token(request: Request) -> str | None:
    """Bearer header wins over the access cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    """
    Resolve the authenticated actor.

    Validates:
    - Access token present (cookie or bearer header)
    - JWT is valid, unexpired and of the access type
    - Referenced session exists and is still valid
    - User exists

    Raises:
        UnauthorizedError: Authentication failed
    """
    # Import here to avoid circular imports
    from genie.db.models import User
    from genie.services import session_service

    token = _extract_access_token(request)
    if not token:
        raise UnauthorizedError("Not authenticated")

    try:
        payload = decode_token(token, ACCESS_TOKEN_TYPE)
        user_id = UUID(payload["sub"])
        session_id = UUID(payload["sid"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise UnauthorizedError("Invalid session")

    auth_session = session_service.get_session(db, session_id)
    if not auth_session or auth_session.user_id != user_id:
        raise UnauthorizedError("Session revoked")

    user = db.get(User, user_id)
    if not user:
        raise UnauthorizedError("User not found")

    return CurrentUser(
        user_id=user.id,
        email=user.email,
        name=user.name,
        session_id=session_id,
    )


def get_optional_session_id(request: Request) -> UUID | None:
    """
    Best-effort session id for logout.

    Accepts the access token or, failing that, the refresh token.
    Expired or malformed tokens yield None.
    """
    candidates = [
        (_extract_access_token(request), ACCESS_TOKEN_TYPE),
        (request.cookies.get(REFRESH_COOKIE), REFRESH_TOKEN_TYPE),
    ]
    for token, token_type in candidates:
        if not token:
            continue
        try:
            payload = decode_token(token, token_type)
            return UUID(payload["sid"])
        except (jwt.InvalidTokenError, KeyError, ValueError):
            logger.debug("Ignoring unusable %s token on logout", token_type)
    return None


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        ForbiddenError: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise ForbiddenError(
            f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
