"""Auth service - sign-up, login and token refresh."""

import logging
from uuid import UUID

import jwt
from sqlalchemy.orm import Session

from genie.core.exceptions import ConflictError, UnauthorizedError
from genie.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    decode_token,
    generate_secret,
    hash_password,
    verify_password,
)
from genie.core.structured_logging import mask_email
from genie.db.enums import CandidateStatus
from genie.db.models import AuthSession, User, UserCandidate
from genie.services import session_service

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.lower().strip()).first()


def sign_up_candidate(db: Session, email: str) -> UserCandidate:
    """
    Register an email for sign-up and mint a one-time secret.

    Any earlier candidate row for the address is replaced.

    Raises:
        ConflictError: A user with this email already exists
    """
    email = email.lower().strip()
    if get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")

    db.query(UserCandidate).filter(UserCandidate.email == email).delete(
        synchronize_session=False
    )
    candidate = UserCandidate(
        email=email,
        secret=generate_secret(),
        status=CandidateStatus.PENDING.value,
    )
    db.add(candidate)
    db.commit()
    db.refresh(candidate)
    logger.info("Sign-up candidate created for %s", mask_email(email))
    return candidate


def sign_up(db: Session, email: str, secret: str, name: str, password: str) -> User:
    """
    Complete sign-up for a pending candidate.

    The user is created and the candidate marked completed in one
    transaction, so the secret cannot be replayed.

    Raises:
        UnauthorizedError: No pending candidate matches (email, secret)
        ConflictError: The email was registered in the meantime
    """
    email = email.lower().strip()
    candidate = (
        db.query(UserCandidate)
        .filter(
            UserCandidate.email == email,
            UserCandidate.secret == secret,
            UserCandidate.status == CandidateStatus.PENDING.value,
        )
        .with_for_update()
        .first()
    )
    if not candidate:
        raise UnauthorizedError("Invalid or expired sign-up link")
    if get_user_by_email(db, email):
        raise ConflictError("A user with this email already exists")

    user = User(name=name.strip(), email=email, password_hash=hash_password(password))
    db.add(user)
    candidate.status = CandidateStatus.COMPLETED.value
    db.commit()
    db.refresh(user)
    logger.info("User signed up", extra={"user_id": str(user.id)})
    return user


def login(db: Session, email: str, password: str) -> tuple[User, AuthSession, str, str]:
    """
    Verify credentials and open a session.

    Returns (user, session, access_token, refresh_token).

    Raises:
        UnauthorizedError: Unknown email or wrong password (same message for both)
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", mask_email(email))
        raise UnauthorizedError("Invalid email or password")

    auth_session = session_service.create_session(db, user)
    db.commit()
    db.refresh(auth_session)
    access_token, refresh_token = session_service.issue_tokens(user, auth_session)
    logger.info("User logged in", extra={"user_id": str(user.id)})
    return user, auth_session, access_token, refresh_token


def refresh_access_token(db: Session, refresh_token: str | None) -> str:
    """
    Exchange a refresh token for a new access token on the same session.

    Raises:
        UnauthorizedError: Token missing/invalid/expired, or session invalidated
    """
    if not refresh_token:
        raise UnauthorizedError("Not authenticated")
    try:
        payload = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        session_id = UUID(payload["sid"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise UnauthorizedError("Invalid refresh token")

    auth_session = session_service.get_session(db, session_id)
    if not auth_session:
        raise UnauthorizedError("Session revoked")
    user = db.get(User, auth_session.user_id)
    if not user:
        raise UnauthorizedError("User not found")

    return create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        session_id=auth_session.id,
    )
