"""
Shared pytest fixtures for teamkit tests.

Provides:
- Database fixtures (in-memory SQLite shared through StaticPool)
- API client with get_db overridden and an in-memory audit sink
- Factories for users, teams, memberships and patients
- The acme/beta scenario used across access-control tests
"""

import os

# Must be set before teamkit reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"

from typing import Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from teamkit.database import Base, build_engine, get_db, utcnow
from teamkit.models import Gender, Membership, Patient, Team, User
from teamkit.main import app
from teamkit.core.access import AccessDecider
from teamkit.core.audit import AuditTrail, MemoryAuditSink
from teamkit.core.permissions import build_default_matrix
from teamkit.core.roles import Role
from teamkit.core.security import create_access_token


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test; every session shares one connection."""
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Access control fixtures
# ============================================================================

@pytest.fixture
def matrix():
    return build_default_matrix()


@pytest.fixture
def decider(matrix) -> AccessDecider:
    return AccessDecider(matrix)


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


# ============================================================================
# API client
# ============================================================================

@pytest.fixture
def client(session_factory, audit_sink) -> Generator[TestClient, None, None]:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    previous_trail = app.state.audit_trail
    app.dependency_overrides[get_db] = override_get_db
    app.state.audit_trail = AuditTrail(audit_sink)

    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.audit_trail = previous_trail


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_user(db):
    def _make(email: str, full_name: str = None) -> User:
        # Hash is never checked outside the auth tests
        user = User(email=email, hashed_password="not-a-real-hash", full_name=full_name)
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_team(db):
    def _make(slug: str, name: str = None, features: dict = None) -> Team:
        team = Team(name=name or slug.title(), slug=slug, features=features or {})
        db.add(team)
        db.commit()
        return team
    return _make


@pytest.fixture
def add_member(db):
    def _add(user: User, team: Team, role: Role) -> Membership:
        membership = Membership(team_id=team.id, user_id=user.id, role=role)
        db.add(membership)
        db.commit()
        return membership
    return _add


@pytest.fixture
def make_patient(db):
    def _make(team: Team, first_name="Jane", last_name="Doe", mobile="(555) 123-4567", created_at=None) -> Patient:
        patient = Patient(
            team_id=team.id,
            first_name=first_name,
            last_name=last_name,
            mobile=mobile,
            gender=Gender.FEMALE,
            created_at=created_at or utcnow(),
        )
        db.add(patient)
        db.commit()
        return patient
    return _make


@pytest.fixture
def world(make_user, make_team, add_member):
    """
    Two teams and four actors:

    - owner:   OWNER of acme, MEMBER of beta
    - admin:   ADMIN of acme
    - member:  MEMBER of acme
    - outsider: no memberships
    """
    acme = make_team("acme", "Acme Inc")
    beta = make_team("beta", "Beta Clinic")

    owner = make_user("owner@example.com", "Olive Owner")
    admin = make_user("admin@example.com", "Adam Admin")
    member = make_user("member@example.com", "Mia Member")
    outsider = make_user("outsider@example.com", "Otto Outsider")

    memberships = {
        "owner_acme": add_member(owner, acme, Role.OWNER),
        "owner_beta": add_member(owner, beta, Role.MEMBER),
        "admin_acme": add_member(admin, acme, Role.ADMIN),
        "member_acme": add_member(member, acme, Role.MEMBER),
    }

    return {
        "acme": acme,
        "beta": beta,
        "owner": owner,
        "admin": admin,
        "member": member,
        "outsider": outsider,
        "memberships": memberships,
    }
