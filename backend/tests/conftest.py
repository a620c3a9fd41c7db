"""Shared fixtures: a fresh SQLite database per test and users for every role."""

import uuid
from datetime import date, time

import pytest
from httpx import ASGITransport, AsyncClient

from crewhours.auth.models import Role, User
from crewhours.auth.utils import create_access_token, hash_password
from crewhours.config import Settings
from crewhours.database import Base, build_engine, build_session_factory
from crewhours.main import create_app
from crewhours.profiles.models import Profile
from crewhours.projects.models import Project
from crewhours.records.models import PerformanceRecord, RecordStatus

# KW 42/2025 runs from Monday 13 to Sunday 19 October 2025.
KW42_MONDAY = date(2025, 10, 13)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        storage_path=str(tmp_path / "signatures"),
        scheduler_enabled=False,
        secret_key="test-secret",
    )


@pytest.fixture
async def session_factory(settings):
    engine = build_engine(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(settings, session_factory):
    # ASGITransport does not run the lifespan, so wire the state by hand.
    application = create_app(settings)
    application.state.session_factory = session_factory
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(db, role: Role, full_name: str, **profile) -> User:
    user = User(
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        hashed_password=hash_password("secret123"),
        full_name=full_name,
        role=role,
    )
    db.add(user)
    await db.flush()
    db.add(Profile(user_id=user.id, **profile))
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def worker(db):
    return await make_user(
        db, Role.MONTER, "Jan Novak",
        iban="SK31 1200 0000 1987 4263 7541", hourly_rate=15.0,
    )


@pytest.fixture
async def manager(db):
    return await make_user(db, Role.MANAGER, "Maria Manager")


@pytest.fixture
async def admin(db):
    return await make_user(db, Role.ADMIN, "Adam Admin")


@pytest.fixture
async def accountant(db):
    return await make_user(db, Role.ACCOUNTANT, "Eva Uctovnicka")


@pytest.fixture
def auth(settings):
    """Build Authorization headers for a user."""

    def _headers(user: User) -> dict:
        token = create_access_token(user.id, user.role.value, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def project(db):
    project = Project(name="Bridge Linz", client="TKJD", location="Linz")
    db.add(project)
    await db.commit()
    await db.refresh(project)
    return project


async def add_record(
    db,
    user: User,
    project: Project,
    day: date,
    start: time = time(7, 0),
    end: time = time(15, 0),
    hours: float = 8.0,
    status: RecordStatus = RecordStatus.DRAFT,
) -> PerformanceRecord:
    record = PerformanceRecord(
        user_id=user.id,
        project_id=project.id,
        date=day,
        time_from=start,
        time_to=end,
        total_hours=hours,
        status=status,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


@pytest.fixture
def make_record(db, project):
    """Insert a record straight into the database, bypassing the API."""

    async def _make(user: User, day: date, **kwargs) -> PerformanceRecord:
        return await add_record(db, user, kwargs.pop("project", project), day, **kwargs)

    return _make
