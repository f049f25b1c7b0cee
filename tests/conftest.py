"""
Shared pytest fixtures for the Cutroom test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - tenant / other_tenant: Pre-created Tenant entities
    - pm_user / other_user: Users in tenant / other_tenant
    - project: Project of `tenant` with its workflow bootstrapped
    - make_project / make_version / make_feedback: ORM factories
"""

import pytest

from cutroom import create_app
from cutroom.models import db as _db
from cutroom.models.asset import AssetVersion
from cutroom.models.auth import Tenant, User
from cutroom.models.feedback import FeedbackItem
from cutroom.services import project_service


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


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
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def db():
    return _db


# ── Tenants & users ──────────────────────────────────────────────────────


def _make_tenant(name: str, slug: str) -> Tenant:
    t = Tenant(name=name, slug=slug)
    _db.session.add(t)
    _db.session.commit()
    return t


def _make_user(tenant: Tenant, email: str, full_name: str, role: str = "pm") -> User:
    u = User(tenant_id=tenant.id, email=email, full_name=full_name, role=role)
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture()
def tenant():
    return _make_tenant("Northlight Films", "northlight")


@pytest.fixture()
def other_tenant():
    return _make_tenant("Bluefin Studio", "bluefin")


@pytest.fixture()
def pm_user(tenant):
    return _make_user(tenant, "pm@northlight.test", "Pat Morgan")


@pytest.fixture()
def other_user(other_tenant):
    return _make_user(other_tenant, "pm@bluefin.test", "Robin Lee")


# ── Domain factories ─────────────────────────────────────────────────────


@pytest.fixture()
def make_project():
    """Create a project through the service so its stages are bootstrapped."""

    def _factory(tenant_id: int, name: str = "Launch Film", stage_config=None):
        return project_service.create_project(tenant_id, {"name": name}, stage_config)

    return _factory


@pytest.fixture()
def project(tenant, make_project):
    return make_project(tenant.id)


@pytest.fixture()
def make_version():
    """Insert an AssetVersion at an arbitrary status (bypasses the guards)."""

    def _factory(project, status: str = "DRAFT", version_no: int | None = None):
        if version_no is None:
            version_no = AssetVersion.query.filter_by(project_id=project.id).count() + 1
        v = AssetVersion(
            tenant_id=project.tenant_id,
            project_id=project.id,
            version_no=version_no,
            file_name=f"cut_v{version_no}.mp4",
            status=status,
        )
        _db.session.add(v)
        _db.session.commit()
        return v

    return _factory


@pytest.fixture()
def make_feedback(make_version):
    """Insert a FeedbackItem on a (new or given) version of the project."""

    def _factory(project, text: str = "Swap the logo for the new one", version=None):
        version = version or make_version(project)
        item = FeedbackItem(
            tenant_id=version.tenant_id,
            asset_version_id=version.id,
            text=text,
        )
        _db.session.add(item)
        _db.session.commit()
        return item

    return _factory
