"""Shared fixtures: in-memory SQLite database, seeded framework/assessment data and an API client."""

from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.security import create_access_token
from database import Base, get_db
from main import app
from models import (
    Assessment,
    Company,
    ComplianceReport,
    Control,
    ControlResult,
    Domain,
    Framework,
    Subdomain,
    User,
)
from services.report_builder import ReportBuilder
from services.storage import SQLAlchemyStorage

# (code, maturity level, status) per control. Governance is fully implemented;
# defense holds the gaps: 1 implemented, 2 partial, 2 missing, 1 not applicable.
# Overall: 6 implemented, 2 partial, 2 missing out of 10 applicable -> 70.
GOVERNANCE_CONTROLS = [
    ("ECC-1.1.1", 1, "implemented"),
    ("ECC-1.1.2", 2, "implemented"),
    ("ECC-1.2.1", 3, "implemented"),
    ("ECC-1.2.2", 2, "implemented"),
    ("ECC-1.3.1", 1, "implemented"),
]
DEFENSE_CONTROLS = [
    ("ECC-2.1.1", 2, "implemented"),
    ("ECC-2.1.2", 3, "partially_implemented"),
    ("ECC-2.2.1", 2, "partially_implemented"),
    ("ECC-2.2.2", 1, "not_implemented"),
    ("ECC-2.3.1", 4, "not_implemented"),
    ("ECC-2.3.2", 2, "not_applicable"),
]


def auth_headers(user_id: uuid.UUID) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def seeded(session_factory) -> SimpleNamespace:
    """Two companies, their users, the NCA ECC framework and one in-progress assessment."""
    async with session_factory() as session:
        company = Company(name="Acme Financial", sector="banking")
        other_company = Company(name="Globex")
        session.add_all([company, other_company])
        await session.flush()

        user = User(email="ciso@acme.test", full_name="Acme CISO", company_id=company.id)
        outsider = User(email="auditor@globex.test", company_id=other_company.id)
        admin = User(email="admin@platform.test", is_admin=True)
        session.add_all([user, outsider, admin])

        framework = Framework(name="nca_ecc", display_name="NCA ECC", description="Essential Cybersecurity Controls", version="2.0")
        session.add(framework)
        await session.flush()

        governance = Domain(framework_id=framework.id, name="governance", display_name="Cybersecurity Governance", order=1)
        defense = Domain(framework_id=framework.id, name="defense", display_name="Cybersecurity Defense", order=2)
        session.add_all([governance, defense])
        await session.flush()

        strategy = Subdomain(domain_id=governance.id, name="strategy", display_name="Cybersecurity Strategy", order=1)
        session.add(strategy)
        await session.flush()

        assessment = Assessment(company_id=company.id, framework_id=framework.id, name="Q3 ECC self-assessment", created_by=user.id)
        session.add(assessment)
        await session.flush()

        controls = {}
        for domain, rows in ((governance, GOVERNANCE_CONTROLS), (defense, DEFENSE_CONTROLS)):
            for code, maturity, status in rows:
                control = Control(
                    domain_id=domain.id,
                    subdomain_id=strategy.id if domain is governance else None,
                    control_id=code,
                    name=f"Control {code}",
                    description=f"requirement {code}",
                    maturity_level=maturity,
                )
                session.add(control)
                await session.flush()
                session.add(ControlResult(assessment_id=assessment.id, control_id=control.id, status=status, updated_by=user.id))
                controls[code] = control.id

        await session.commit()

        return SimpleNamespace(
            company_id=company.id,
            other_company_id=other_company.id,
            user_id=user.id,
            outsider_id=outsider.id,
            admin_id=admin.id,
            framework_id=framework.id,
            governance_id=governance.id,
            defense_id=defense.id,
            assessment_id=assessment.id,
            controls=controls,
        )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(db) -> SQLAlchemyStorage:
    return SQLAlchemyStorage(db)


@pytest.fixture
async def report(storage, seeded) -> ComplianceReport:
    return await ReportBuilder(storage).build_report(seeded.assessment_id, "Q3 ECC report", created_by=seeded.user_id)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
