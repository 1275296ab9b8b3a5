"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ovr.core.security import create_access_token
from ovr.db.base import Base
from ovr.db.session import get_db
from ovr.main import app
from ovr.models.corrective_action import CorrectiveAction
from ovr.models.incident import Incident, IncidentInvestigator, IncidentStatus
from ovr.models.investigation import Investigation
from ovr.services.checklist import create_checklist
from ovr.services.rbac import Principal, UserRole


# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed user ids used across the suite
REPORTER_ID = 1
OTHER_EMPLOYEE_ID = 2
SUPERVISOR_ID = 3
HOD_ID = 7
INVESTIGATOR_ID = 12
QI_MANAGER_ID = 20
QI_ANALYST_ID = 21
ADMIN_ID = 30


def make_principal(user_id: int, *roles: UserRole, email: str | None = None) -> Principal:
    """Build a principal with the given roles."""
    return Principal(id=user_id, roles=frozenset(roles), email=email)


def bearer_headers(principal: Principal) -> dict[str, str]:
    """Create authorization headers carrying the principal's claims."""
    token = create_access_token(
        subject=principal.id,
        roles=[role.value for role in principal.roles],
        email=principal.email,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture(scope="function")
def client() -> Generator[TestClient, None, None]:
    """Create FastAPI test client for endpoints that do not touch the database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def api_client(async_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async client bound to the test database session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# --- Principals ---


@pytest.fixture
def reporter() -> Principal:
    """Employee who reports incidents."""
    return make_principal(REPORTER_ID, UserRole.EMPLOYEE, email="reporter@hospital.local")


@pytest.fixture
def other_employee() -> Principal:
    """Unrelated employee."""
    return make_principal(OTHER_EMPLOYEE_ID, UserRole.EMPLOYEE)


@pytest.fixture
def supervisor() -> Principal:
    """Supervisor of the reporter."""
    return make_principal(SUPERVISOR_ID, UserRole.SUPERVISOR)


@pytest.fixture
def hod() -> Principal:
    """Department head assigned to investigate."""
    return make_principal(HOD_ID, UserRole.DEPARTMENT_HEAD)


@pytest.fixture
def investigator() -> Principal:
    """Ad-hoc investigator (plain employee)."""
    return make_principal(
        INVESTIGATOR_ID, UserRole.EMPLOYEE, email="investigator@hospital.local"
    )


@pytest.fixture
def qi_manager() -> Principal:
    """Quality manager."""
    return make_principal(QI_MANAGER_ID, UserRole.QUALITY_MANAGER)


@pytest.fixture
def qi_analyst() -> Principal:
    """Quality analyst."""
    return make_principal(QI_ANALYST_ID, UserRole.QUALITY_ANALYST)


@pytest.fixture
def super_admin() -> Principal:
    """Super administrator."""
    return make_principal(ADMIN_ID, UserRole.SUPER_ADMIN)


# --- Data factories ---


@pytest.fixture
def incident_factory(
    async_session: AsyncSession,
) -> Callable[..., Any]:
    """Factory inserting incidents with sensible defaults."""
    counter = {"n": 0}

    async def create(
        status: IncidentStatus = IncidentStatus.HOD_ASSIGNED,
        reporter_id: int = REPORTER_ID,
        **fields: Any,
    ) -> Incident:
        counter["n"] += 1
        incident = Incident(
            id=fields.pop("id", f"OVR-2026-{counter['n']:03d}"),
            status=status.value,
            reporter_id=reporter_id,
            title=fields.pop("title", "Patient fall in ward 3"),
            description=fields.pop(
                "description", "Patient slipped near the bathroom during the night shift."
            ),
            **fields,
        )
        async_session.add(incident)
        await async_session.commit()
        await async_session.refresh(incident)
        return incident

    return create


@pytest.fixture
async def hod_incident(incident_factory) -> Incident:
    """Incident waiting for the department head."""
    return await incident_factory(IncidentStatus.HOD_ASSIGNED, department_head_id=HOD_ID)


@pytest.fixture
async def investigation(async_session: AsyncSession, hod_incident: Incident) -> Investigation:
    """Open investigation on the HOD incident."""
    investigation = Investigation(incident_id=hod_incident.id, created_by=QI_MANAGER_ID)
    async_session.add(investigation)
    await async_session.commit()
    await async_session.refresh(investigation)
    return investigation


@pytest.fixture
async def corrective_action(
    async_session: AsyncSession, hod_incident: Incident
) -> CorrectiveAction:
    """Open corrective action with a two-item checklist."""
    action = CorrectiveAction(
        incident_id=hod_incident.id,
        title="Install grab rails",
        description="Install grab rails in every ward 3 bathroom.",
        due_date=datetime.now(timezone.utc) + timedelta(days=14),
        checklist=create_checklist(["Order rails", "Fit rails"]),
        created_by=QI_MANAGER_ID,
    )
    async_session.add(action)
    await async_session.commit()
    await async_session.refresh(action)
    return action


@pytest.fixture
async def assignment(async_session: AsyncSession, hod_incident: Incident) -> IncidentInvestigator:
    """Pending investigator assignment on the HOD incident."""
    record = IncidentInvestigator(
        incident_id=hod_incident.id,
        investigator_id=INVESTIGATOR_ID,
        assigned_by=HOD_ID,
    )
    async_session.add(record)
    await async_session.commit()
    await async_session.refresh(record)
    return record
