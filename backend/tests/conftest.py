"""
TrabajaTecnico Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment variables are set before any application import so the
       settings singleton never points at a real database or mailbox.

Fixture Hierarchy (all function-scoped):
    ├── engine / db:      in-memory aiosqlite database with every table
    ├── marketplace:      seeded users, profiles and projects
    ├── mock_mailer:      Mailer stand-in recording send attempts
    ├── service:          ApplicationService wired to db + mock mailer
    ├── null_title_notifications: writer whose technician insert is rejected
    ├── mock_db_session:  AsyncMock session for failure-path tests
    └── client:           httpx AsyncClient against the FastAPI app
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_ROOT"] = tempfile.mkdtemp(prefix="trabajatecnico_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""

from datetime import date, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import trabajatecnico.models  # noqa: E402,F401
from trabajatecnico.auth import CurrentUser  # noqa: E402
from trabajatecnico.config import settings  # noqa: E402
from trabajatecnico.database import Base  # noqa: E402
from trabajatecnico.models.project import Project  # noqa: E402
from trabajatecnico.models.user import CompanyProfile, TechnicianProfile, User  # noqa: E402
from trabajatecnico.services.application_service import ApplicationService  # noqa: E402
from trabajatecnico.services.mailer import Mailer, SendResult  # noqa: E402
from trabajatecnico.services.notification_service import NotificationService  # noqa: E402

PERMISSIVE_TRANSITIONS = {
    status: ["accepted", "rejected"] for status in ("pending", "accepted", "rejected", "withdrawn")
}


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """AsyncMock session for paths where the database itself must fail."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    # ``async with session.begin_nested()`` needs a sync call returning a context manager
    session.begin_nested = MagicMock(return_value=MagicMock())
    return session


# ══════════════════════════════════════════════════════════════════════════
# Seed Data
# ══════════════════════════════════════════════════════════════════════════

def _current(user: User) -> CurrentUser:
    return CurrentUser(
        user_id=user.id, email=user.email, full_name=user.full_name, role=user.user_type
    )


@pytest_asyncio.fixture
async def marketplace(db):
    """
    Technician T (CV on file), technician U (no CV), companies C and D,
    and projects owned by C: open P, in-progress Q, expired R.
    """
    tech = User(email="tomas@example.com", full_name="Tomas Quispe Rojas", user_type="technician")
    no_cv = User(email="ursula@example.com", full_name="Ursula Diaz", user_type="technician")
    company = User(email="rrhh@acme.example", full_name="Carla Acme", user_type="company")
    other_company = User(email="jobs@delta.example", full_name="Diego Delta", user_type="company")
    db.add_all([tech, no_cv, company, other_company])
    await db.flush()

    db.add_all(
        [
            TechnicianProfile(user_id=tech.id, cv_uploaded=True, cv_file="cv-tomas.pdf"),
            TechnicianProfile(user_id=no_cv.id, cv_uploaded=False),
            CompanyProfile(user_id=company.id, company_name="Acme HVAC"),
            CompanyProfile(user_id=other_company.id, company_name="Delta Electric"),
        ]
    )

    today = date.today()
    open_project = Project(
        company_id=company.id,
        title="HVAC maintenance - Lima",
        status="open",
        application_deadline=today + timedelta(days=30),
    )
    in_progress = Project(
        company_id=company.id,
        title="Solar panel install",
        status="in_progress",
        application_deadline=today + timedelta(days=30),
    )
    expired = Project(
        company_id=company.id,
        title="Electrical audit",
        status="open",
        application_deadline=today - timedelta(days=1),
    )
    db.add_all([open_project, in_progress, expired])
    await db.commit()

    return SimpleNamespace(
        technician=_current(tech),
        technician_without_cv=_current(no_cv),
        company=_current(company),
        other_company=_current(other_company),
        open_project=open_project,
        in_progress_project=in_progress,
        expired_project=expired,
    )


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_mailer():
    """Records send attempts; behaves like an unconfigured mailer."""
    mailer = MagicMock(spec=Mailer)
    mailer.configured = False
    not_configured = SendResult(delivered=False, reason="not_configured")
    mailer.send_application_confirmation = AsyncMock(return_value=not_configured)
    mailer.send_job_application = AsyncMock(return_value=not_configured)
    return mailer


@pytest.fixture
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def service(mock_mailer, upload_root):
    return ApplicationService(
        mailer=mock_mailer,
        upload_root=str(upload_root),
        status_transitions=PERMISSIVE_TRANSITIONS,
    )


class NullTitleNotifications(NotificationService):
    """Stores the technician notification without a title, which the schema rejects."""

    async def application_submitted(self, db, technician_id, project_id, project_title):
        return await self.create(
            db,
            user_id=technician_id,
            type="job_application",
            title=None,
            message="sent",
            related_id=project_id,
        )


@pytest.fixture
def null_title_notifications():
    """Notification writer whose first lifecycle insert fails in the database."""
    return NullTitleNotifications()


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def auth_headers():
    """Builds an Authorization header for a seeded user."""

    def _headers(user: CurrentUser) -> dict:
        token = jwt.encode({"sub": str(user.user_id)}, settings.jwt_secret, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(session_factory, service):
    """
    AsyncClient with the request session bound to the test database and
    the ApplicationService bound to the mock mailer.
    """
    from trabajatecnico.database import get_db_session
    from trabajatecnico.dependencies import get_application_service
    from trabajatecnico.main import app

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_application_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http

    app.dependency_overrides.clear()
