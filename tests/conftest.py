"""
Shared pytest fixtures for the FASE Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test app context + table reset (autouse)
    - client: Flask test client (function-scoped)
    - company / make_company: tenant rows
    - make_user: user + membership (+ optional supervisor edge)
    - auth_headers: bearer headers signed with the testing JWT key
    - ctx_for: RequestContext for service-level tests
"""

import pytest

from fase import create_app
from fase.core.context import RequestContext
from fase.core.roles import Role
from fase.models import db as _db
from fase.models.auth import Company, User, UserCompany
from fase.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_company():
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        name = name or f"Empresa {counter['n']}"
        c = Company(name=name, slug=f"empresa-{counter['n']}")
        _db.session.add(c)
        _db.session.commit()
        return c

    return _make


@pytest.fixture()
def company(make_company):
    return make_company("Acme")


@pytest.fixture()
def make_user(company):
    """Create a user that belongs to *company* (default: the ``company`` fixture)."""
    counter = {"n": 0}

    def _make(role=Role.USER, *, name=None, supervisor=None, in_company=None, status="ACTIVE"):
        counter["n"] += 1
        target = in_company if in_company is not None else company
        u = User(
            email=f"user{counter['n']}@example.com",
            name=name or f"Usuario {counter['n']}",
            role=role.value,
            status=status,
            current_company_id=target.id,
        )
        _db.session.add(u)
        _db.session.flush()
        _db.session.add(UserCompany(
            user_id=u.id,
            company_id=target.id,
            supervisor_id=supervisor.id if supervisor is not None else None,
        ))
        _db.session.commit()
        return u

    return _make


@pytest.fixture()
def auth_headers(app):
    def _headers(user, company_id=None):
        token = generate_access_token(user.id, company_id or user.current_company_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def ctx_for():
    def _ctx(user, company_id=None):
        return RequestContext(
            user_id=user.id,
            role=Role(user.role),
            company_id=company_id if company_id is not None else user.current_company_id,
        )

    return _ctx


@pytest.fixture()
def supervisor_team(make_user):
    """SUPERVISOR with two direct supervisees plus an unrelated USER."""
    sup = make_user(Role.SUPERVISOR, name="Sofia Supervisora")
    a = make_user(Role.USER, name="Ana", supervisor=sup)
    b = make_user(Role.USER, name="Bruno", supervisor=sup)
    other = make_user(Role.USER, name="Zoe")
    return sup, a, b, other
