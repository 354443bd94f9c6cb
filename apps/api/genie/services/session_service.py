"""Session service - login sessions backing issued tokens, for revocation."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from genie.core.security import create_access_token, create_refresh_token
from genie.db.models import AuthSession, User

logger = logging.getLogger(__name__)


def create_session(db: Session, user: User) -> AuthSession:
    """Open a new valid session for the user (caller commits)."""
    auth_session = AuthSession(user_id=user.id, valid=True)
    db.add(auth_session)
    db.flush()
    return auth_session


def get_session(db: Session, session_id: UUID) -> AuthSession | None:
    """Return the session only if it exists and is still valid."""
    return (
        db.query(AuthSession)
        .filter(AuthSession.id == session_id, AuthSession.valid.is_(True))
        .first()
    )


def invalidate_session(db: Session, session_id: UUID) -> bool:
    """
    Mark a session invalid. Idempotent.

    Returns True if a valid session was invalidated by this call.
    """
    auth_session = get_session(db, session_id)
    if not auth_session:
        return False
    auth_session.valid = False
    auth_session.invalidated_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("Session invalidated", extra={"user_id": str(auth_session.user_id)})
    return True


def issue_tokens(user: User, auth_session: AuthSession) -> tuple[str, str]:
    """Return (access_token, refresh_token) for a user's session."""
    access_token = create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        session_id=auth_session.id,
    )
    refresh_token = create_refresh_token(auth_session.id)
    return access_token, refresh_token
