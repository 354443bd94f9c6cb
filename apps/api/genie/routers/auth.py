"""Authentication router - sign-up, login, logout, session and refresh."""

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from genie.core.config import settings
from genie.core.deps import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_current_user,
    get_db,
    get_optional_session_id,
    require_csrf_header,
)
from genie.core.rate_limit import AUTH_LIMIT, limiter
from genie.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    RefreshResponse,
    SessionRead,
    SignUpCandidateRequest,
    SignUpRequest,
    UserCandidateRead,
    UserRead,
)
from genie.schemas.common import Envelope, ok
from genie.services import auth_service, email_service, session_service

router = APIRouter(prefix="/auth", tags=["auth"])


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


# =============================================================================
# Cookie helpers
# =============================================================================

def _set_auth_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def _set_access_cookie(response: Response, token: str) -> None:
    _set_auth_cookie(response, ACCESS_COOKIE, token, settings.ACCESS_TOKEN_EXPIRES_HOURS * 3600)


def _set_refresh_cookie(response: Response, token: str) -> None:
    _set_auth_cookie(response, REFRESH_COOKIE, token, settings.REFRESH_TOKEN_EXPIRES_DAYS * 86400)


def _clear_auth_cookies(response: Response) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        _set_auth_cookie(response, key, "", 0)


# =============================================================================
# Sign-up
# =============================================================================

@router.post(
    "/signup/candidate",
    status_code=201,
    response_model=Envelope[UserCandidateRead],
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AUTH_LIMIT)
async def sign_up_candidate(
    request: Request,
    body: SignUpCandidateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Start sign-up: email a one-time registration link."""
    candidate = auth_service.sign_up_candidate(db, body.email)
    background_tasks.add_task(email_service.dispatch_signup_email, candidate.email, candidate.secret)
    return ok(
        "Registration link sent",
        UserCandidateRead.model_validate(candidate),
    )


@router.post(
    "/signup",
    status_code=201,
    response_model=Envelope[UserRead],
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AUTH_LIMIT)
async def sign_up(
    request: Request,
    body: SignUpRequest,
    db: Session = Depends(get_db),
):
    """Finish sign-up with the emailed secret."""
    user = auth_service.sign_up(db, body.email, body.secret, body.name, body.password)
    return ok("User created", UserRead.model_validate(user))


# =============================================================================
# Session
# =============================================================================

@router.post(
    "/session",
    status_code=201,
    response_model=Envelope[LoginResponse],
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(AUTH_LIMIT)
async def create_session(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """Log in: open a session and set the access/refresh cookies."""
    _, auth_session, access_token, refresh_token = auth_service.login(
        db, body.email, body.password
    )
    _set_access_cookie(response, access_token)
    _set_refresh_cookie(response, refresh_token)
    return ok(
        "Logged in",
        LoginResponse(
            session=SessionRead.model_validate(auth_session),
            access_token=access_token,
            refresh_token=refresh_token,
        ),
    )


@router.get("/session", response_model=Envelope[CurrentUser])
async def get_session(user: CurrentUser = Depends(get_current_user)):
    """Identity of the authenticated actor."""
    return ok("Session found", user)


@router.delete(
    "/session",
    response_model=Envelope[None],
    dependencies=[Depends(require_csrf_header)],
)
async def delete_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Log out.

    Idempotent: an already-invalid, expired or missing session still
    succeeds and the cookies are cleared either way.
    """
    session_id = get_optional_session_id(request)
    if session_id:
        session_service.invalidate_session(db, session_id)
    _clear_auth_cookies(response)
    return ok("Logged out")


@router.post(
    "/refresh",
    response_model=Envelope[RefreshResponse],
    dependencies=[Depends(require_csrf_header)],
)
async def refresh_session(
    request: Request,
    response: Response,
    body: RefreshRequest | None = None,
    db: Session = Depends(get_db),
):
    """Exchange a refresh token (cookie or body) for a new access token."""
    token = (body.refresh_token if body else None) or request.cookies.get(REFRESH_COOKIE)
    access_token = auth_service.refresh_access_token(db, token)
    _set_access_cookie(response, access_token)
    return ok("Session refreshed", RefreshResponse(access_token=access_token))
