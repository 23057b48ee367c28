"""
Test fixtures - in-memory SQLite database, seeded catalogs and HTTP client
"""
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from bidflow.config import get_settings
from bidflow.database import Base, get_db
from bidflow.main import app
from bidflow.models import Client, CostType, Job, Material
from bidflow.services import (
    boq_service,
    contract_service,
    general_costs,
    quotation_calculator,
    workflow,
)


@pytest_asyncio.fixture()
async def db_session():
    """Create a fresh in-memory SQLite database for each test"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Cost type catalog, one client, two jobs and two materials.

    Returns ids only: services roll the session back on errors, which
    expires every loaded instance.
    """
    for type_name in get_settings().DEFAULT_COST_TYPES:
        db_session.add(CostType(type_name=type_name, description=type_name))

    client = Client(name="Acme Builders", email="office@acme.test", tel="021234567",
                    address="12 Harbour Rd", tax_id="0105551234567")
    slab = Job(name="Concrete slab", description="Reinforced floor slab", unit="m2")
    wall = Job(name="Brick wall", description="Half-brick partition", unit="m2")
    cement = Material(name="Cement", unit="bag")
    brick = Material(name="Brick", unit="piece")

    db_session.add_all([client, slab, wall, cement, brick])
    await db_session.commit()

    return {
        "client_id": client.id,
        "slab_id": slab.id,
        "wall_id": wall.id,
        "cement_id": cement.id,
        "brick_id": brick.id,
        "cost_types": list(get_settings().DEFAULT_COST_TYPES),
    }


@pytest_asyncio.fixture()
async def project(db_session, seed_data):
    """A planning project with an empty draft BOQ"""
    created = await workflow.create_project(
        db_session, name="Riverside Warehouse", address="99 River St",
        client_id=seed_data["client_id"],
    )
    boq = await general_costs.get_or_create_boq(db_session, created.id)
    return {**seed_data, "project_id": created.id, "boq_id": boq.id}


@pytest_asyncio.fixture()
async def approved_boq(db_session, project):
    """Slab line: quantity 2, labor 100, one cement price of 50; BOQ approved"""
    await boq_service.add_boq_job(db_session, project["boq_id"], project["slab_id"],
                                  quantity=2, labor_cost=100)
    await boq_service.log_material_price(db_session, project["boq_id"], project["slab_id"],
                                         project["cement_id"], estimated_price=50)
    await boq_service.approve_boq(db_session, project["boq_id"])
    return project


@pytest_asyncio.fixture()
async def approved_quotation(db_session, approved_boq):
    """Draft quotation repriced (slab at 250, general 100, tax 7%) and approved"""
    project_id = approved_boq["project_id"]
    await quotation_calculator.compute(db_session, project_id)
    await quotation_calculator.update_selling_prices(
        db_session, project_id,
        tax_percentage=7,
        selling_general_cost=100,
        job_selling_prices={approved_boq["slab_id"]: 250},
    )
    await quotation_calculator.approve(db_session, project_id)
    return approved_boq


@pytest_asyncio.fixture()
async def contracted(db_session, approved_quotation):
    """Three-period contract on top of the approved quotation"""
    contract = await contract_service.create_contract(
        db_session,
        approved_quotation["project_id"],
        periods=[
            {"period_number": n, "amount_period": 200.0, "delivered_within": 30 * n,
             "jobs": [{"job_id": approved_quotation["slab_id"], "job_amount": 200.0}]}
            for n in (1, 2, 3)
        ],
        pay_within=30,
        retention_money=5.0,
    )
    return {**approved_quotation, "contract_id": contract.id}


@pytest_asyncio.fixture()
async def client(db_session, seed_data):
    """httpx AsyncClient bound to the FastAPI app"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

    app.dependency_overrides.clear()
