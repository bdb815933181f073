"""Pytest fixtures for nomina engine tests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from nomina_engine.api.app import create_app
from nomina_engine.api.dependencies import get_db_session
from nomina_engine.config import get_settings
from nomina_engine.database import enable_sqlite_savepoints
from nomina_engine.models import (
    Base,
    Company,
    CompanyStatus,
    ContractCondition,
    Department,
    Employee,
    PayrollCalendar,
    PayrollCalendarPeriod,
    Position,
    User,
    UserRole,
)
from nomina_engine.security import create_access_token, hash_password
from nomina_engine.services.auth_service import token_claims
from nomina_engine.services.calendar_service import CalendarService
from tests.factories import TEST_PASSWORD

# In-memory SQLite shared across sessions through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Create a fresh database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Companies and catalogs
# ============================================================================


@pytest.fixture
async def company(session: AsyncSession) -> Company:
    company = Company(
        name="Comercializadora del Norte",
        rfc="CNO010101AB1",
        email="contacto@cnorte.mx",
        status=CompanyStatus.ACTIVE.value,
    )
    session.add(company)
    await session.commit()
    return company


@pytest.fixture
async def other_company(session: AsyncSession) -> Company:
    company = Company(
        name="Servicios del Sur",
        rfc="SSU020202CD2",
        status=CompanyStatus.ACTIVE.value,
    )
    session.add(company)
    await session.commit()
    return company


@pytest.fixture
async def department(session: AsyncSession, company: Company) -> Department:
    department = Department(company_id=company.company_id, name="Ventas")
    session.add(department)
    await session.commit()
    return department


@pytest.fixture
async def position(session: AsyncSession, company: Company) -> Position:
    position = Position(company_id=company.company_id, name="Analista")
    session.add(position)
    await session.commit()
    return position


# ============================================================================
# Users
# ============================================================================


async def _user(
    session: AsyncSession,
    role: UserRole,
    email: str,
    name: str,
    company: Company | None = None,
    **extra,
) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password(TEST_PASSWORD),
        role=role.value,
        company_id=company.company_id if company else None,
        **extra,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def admin_user(session: AsyncSession) -> User:
    return await _user(session, UserRole.ADMIN, "admin@nomina.mx", "Admin")


@pytest.fixture
async def operator_user(session: AsyncSession) -> User:
    return await _user(session, UserRole.OPERATOR, "operador@nomina.mx", "Olga Operadora")


@pytest.fixture
async def client_user(session: AsyncSession, company: Company) -> User:
    return await _user(session, UserRole.CLIENT, "cliente@cnorte.mx", "Carlos Cliente", company)


@pytest.fixture
async def other_client_user(session: AsyncSession, other_company: Company) -> User:
    return await _user(session, UserRole.CLIENT, "cliente@ssur.mx", "Sofía Sur", other_company)


@pytest.fixture
async def department_head(
    session: AsyncSession, company: Company, department: Department
) -> User:
    return await _user(
        session,
        UserRole.DEPARTMENT_HEAD,
        "jefe@cnorte.mx",
        "Diego Jefe",
        company,
        department_id=department.department_id,
    )


@pytest.fixture
async def employee_user(session: AsyncSession, company: Company) -> User:
    return await _user(session, UserRole.EMPLOYEE, "empleado@cnorte.mx", "Eva Empleada", company)


# ============================================================================
# Employees and calendars
# ============================================================================


@pytest.fixture
async def employees(session: AsyncSession, company: Company) -> list[Employee]:
    """Two active employees with daily salaries of 500 and 800."""
    rows = [
        Employee(
            company_id=company.company_id,
            employee_number=1,
            first_name="Juan",
            last_name="Pérez",
            second_last_name="López",
            rfc="PELJ800101AB1",
            curp="PELJ800101HDFRPN09",
            nss="12345678901",
            salary=Decimal("500.00"),
            hire_date=date(2020, 1, 15),
        ),
        Employee(
            company_id=company.company_id,
            employee_number=2,
            first_name="María",
            last_name="García",
            rfc="GAMA850202CD2",
            curp="GAMA850202MDFRRR05",
            nss="10987654321",
            salary=Decimal("800.00"),
            hire_date=date(2021, 6, 1),
        ),
    ]
    session.add_all(rows)
    await session.flush()
    session.add_all([ContractCondition(employee_id=e.employee_id) for e in rows])
    company.employees_count = len(rows)
    await session.commit()
    return rows


@pytest.fixture
async def calendar(
    session: AsyncSession, company: Company, operator_user: User
) -> PayrollCalendar:
    """Quincenal calendar for 2025 (24 periods)."""
    service = CalendarService(session)
    calendar, _ = await service.create_calendar(
        operator_user,
        company_id=company.company_id,
        name="Quincenal 2025",
        pay_frequency="quincenal",
        start_date=date(2025, 1, 1),
    )
    await session.commit()
    return calendar


@pytest.fixture
async def periods(session: AsyncSession, calendar: PayrollCalendar) -> list[PayrollCalendarPeriod]:
    return await CalendarService(session).list_periods(calendar.calendar_id)


# ============================================================================
# API
# ============================================================================


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test session."""
    app = create_app(replace(get_settings(), environment="test", cors_origins=("*",)))

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build a bearer header for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(token_claims(user))}"}

    return _headers
