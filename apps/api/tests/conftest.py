"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created per test
- User / organization / project fixtures
- Token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

# Settings are read at import time; configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["JWT_SECRET"] = "test-jwt-secret-that-is-long-enough-for-hs256"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from genie.core.deps import ACCESS_COOKIE, CSRF_HEADER, CSRF_HEADER_VALUE, get_db
from genie.core.security import hash_password
from genie.db.base import Base
from genie.db.enums import Role
from genie.db.models import Organization, OrganizationMember, Project, ProjectMember, User
from genie.db.session import SessionLocal, engine
from genie.main import app
from genie.services import org_service, project_service, session_service

TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema for every test.

    The in-memory engine uses a StaticPool, so the app and the test
    share one connection and see the same data.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def password() -> str:
    """Plain-text password of every user built by make_user."""
    return TEST_PASSWORD


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    """Factory for users with a known password."""
    def _make(name: str = "Test User", email: str | None = None) -> User:
        user = User(
            name=name,
            email=email or f"user-{uuid.uuid4().hex[:8]}@test.com",
            password_hash=hash_password(TEST_PASSWORD),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture(scope="function")
def test_user(make_user) -> User:
    return make_user(name="Owner User")


@pytest.fixture(scope="function")
def test_org(db: Session, test_user: User) -> Organization:
    """Organization owned by test_user."""
    return org_service.create_org(db, "Test Organization", "For tests", test_user.id)


@pytest.fixture(scope="function")
def test_project(db: Session, test_org: Organization, test_user: User) -> Project:
    """Project in test_org owned by test_user."""
    return project_service.create_project(db, test_org.id, "Test Project", None, test_user.id)


@pytest.fixture(scope="function")
def add_org_member(db: Session) -> Callable[..., OrganizationMember]:
    def _add(org: Organization, user: User, role: Role = Role.MEMBER) -> OrganizationMember:
        membership = OrganizationMember(organization_id=org.id, user_id=user.id, role=role.value)
        db.add(membership)
        db.commit()
        return membership

    return _add


@pytest.fixture(scope="function")
def add_project_member(db: Session, add_org_member) -> Callable[..., ProjectMember]:
    """Adds the user to the project (and to its organization if needed)."""
    def _add(project: Project, user: User, role: Role = Role.MEMBER) -> ProjectMember:
        in_org = (
            db.query(OrganizationMember)
            .filter(
                OrganizationMember.organization_id == project.organization_id,
                OrganizationMember.user_id == user.id,
            )
            .first()
        )
        if not in_org:
            org = db.get(Organization, project.organization_id)
            add_org_member(org, user)
        membership = ProjectMember(project_id=project.id, user_id=user.id, role=role.value)
        db.add(membership)
        db.commit()
        return membership

    return _add


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    __test__ = False

    user: User
    session_id: uuid.UUID
    token: str
    refresh_token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="function")
def login_as(db: Session) -> Callable[[User], TestAuth]:
    """Open a real session for a user and mint its token pair."""
    def _login(user: User) -> TestAuth:
        auth_session = session_service.create_session(db, user)
        db.commit()
        access_token, refresh_token = session_service.issue_tokens(user, auth_session)
        return TestAuth(
            user=user,
            session_id=auth_session.id,
            token=access_token,
            refresh_token=refresh_token,
        )

    return _login


@pytest.fixture(scope="function")
def test_auth(test_user: User, login_as) -> TestAuth:
    return login_as(test_user)


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_get_db(db: Session):
    def override_get_db():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    return override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Unauthenticated AsyncClient (CSRF header included).

    https base URL because auth cookies are Secure outside dev.
    """
    app.dependency_overrides[get_db] = _override_get_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://test",
        headers={CSRF_HEADER: CSRF_HEADER_VALUE},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as test_user via the access cookie."""
    app.dependency_overrides[get_db] = _override_get_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="https://test",
        cookies={ACCESS_COOKIE: test_auth.token},
        headers={CSRF_HEADER: CSRF_HEADER_VALUE},
    ) as c:
        yield c

    app.dependency_overrides.clear()
