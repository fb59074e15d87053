"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created and dropped per test
- Organizations and users for every role
- HTTPX AsyncClient factory with session cookie and CSRF header
"""
import os
import uuid
from typing import AsyncGenerator, Generator
from urllib.parse import unquote

# Must be set before any casa import reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["RESEND_API_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy.orm import Session

from casa.core.deps import COOKIE_NAME, get_db
from casa.core.responses import FLASH_COOKIE
from casa.core.security import create_session_token, get_password_hash
from casa.db.base import Base
from casa.db.enums import Role
from casa.db.models import Case, CaseAssignment, CaseContact, Organization, User
from casa.db.session import SessionLocal, engine
from casa.main import app

PASSWORD = "password123"
_PASSWORD_HASH = get_password_hash(PASSWORD)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def make_user(
    db: Session,
    org: Organization,
    role: Role,
    display_name: str | None = None,
    active: bool = True,
    with_password: bool = True,
) -> User:
    user = User(
        id=uuid.uuid4(),
        organization_id=org.id,
        role=role.value,
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        display_name=display_name or f"Test {role.value}",
        active=active,
        password_hash=_PASSWORD_HASH if with_password else None,
    )
    db.add(user)
    db.commit()
    return user


def make_case(db: Session, org: Organization, volunteers: list[User] = ()) -> Case:
    case = Case(id=uuid.uuid4(), organization_id=org.id, case_number=f"CINA-{uuid.uuid4().hex[:6]}")
    db.add(case)
    db.flush()
    for volunteer in volunteers:
        db.add(CaseAssignment(case_id=case.id, volunteer_id=volunteer.id, active=True))
    db.commit()
    return case


def make_contact(
    db: Session,
    case: Case,
    creator: User | None = None,
    want_driving_reimbursement: bool = True,
    miles_driven: int = 20,
) -> CaseContact:
    contact = CaseContact(
        id=uuid.uuid4(),
        case_id=case.id,
        creator_id=creator.id if creator else None,
        miles_driven=miles_driven,
        want_driving_reimbursement=want_driving_reimbursement,
    )
    db.add(contact)
    db.commit()
    return contact


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    org = Organization(id=uuid.uuid4(), name="Test CASA")
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def other_org(db: Session) -> Organization:
    org = Organization(id=uuid.uuid4(), name="Other CASA")
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def casa_admin(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org, Role.CASA_ADMIN)


@pytest.fixture(scope="function")
def supervisor(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org, Role.SUPERVISOR)


@pytest.fixture(scope="function")
def volunteer(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org, Role.VOLUNTEER, display_name="Val Volunteer")


@pytest.fixture(scope="function")
def other_volunteer(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org, Role.VOLUNTEER, display_name="Otto Volunteer")


@pytest.fixture(scope="function")
def inactive_volunteer(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org, Role.VOLUNTEER, active=False)


@pytest.fixture(scope="function")
def volunteer_with_cases(db: Session, test_org: Organization) -> User:
    user = make_user(db, test_org, Role.VOLUNTEER, active=False)
    make_case(db, test_org, [user])
    make_case(db, test_org, [user])
    return user


@pytest.fixture(scope="function")
def other_org_admin(db: Session, other_org: Organization) -> User:
    return make_user(db, other_org, Role.CASA_ADMIN)


@pytest.fixture(scope="function")
def other_org_volunteer(db: Session, other_org: Organization) -> User:
    return make_user(db, other_org, Role.VOLUNTEER)


# =============================================================================
# Client Fixtures
# =============================================================================

def session_token(user: User, true_user: User | None = None) -> str:
    """Mint a session token; pass true_user to mint an impersonating session."""
    return create_session_token(
        user_id=user.id,
        org_id=user.organization_id,
        role=user.role,
        token_version=(true_user or user).token_version,
        true_user_id=true_user.id if true_user else None,
    )


def client_with_token(token: str | None) -> AsyncClient:
    cookies = {COOKIE_NAME: token} if token else {}
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    )


@pytest.fixture(scope="function")
async def client_for(db: Session) -> AsyncGenerator:
    """
    Factory for authenticated clients.

    Usage:
        async with client_for(admin) as client: ...
        async with client_for(volunteer, true_user=admin) as client: ...
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    def _make(user: User | None, true_user: User | None = None) -> AsyncClient:
        return client_with_token(session_token(user, true_user) if user else None)

    yield _make

    app.dependency_overrides.clear()


def flash_notice(response: Response) -> str | None:
    raw = response.cookies.get(FLASH_COOKIE)
    return unquote(raw) if raw is not None else None
