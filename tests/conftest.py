"""
Fixtures: banco SQLite em memória por teste e cliente HTTP contra a aplicação ASGI
"""
from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import oficina.models  # noqa: F401
from oficina.main import app
from oficina.database import Base, get_db
from oficina.core import limiter, create_access_token
from oficina.models import TenantStatus, User, UserRole
from seed_dev_data import seed_workshop


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
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def workshop(db):
    return await seed_workshop(db)


@pytest.fixture
async def other_workshop(db, workshop):
    return await seed_workshop(db, name="Outra Oficina", email_prefix="other")


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.enabled = True


def auth_headers(user, tenant_id: str = None) -> dict:
    headers = {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}
    if tenant_id:
        headers["X-Tenant-ID"] = tenant_id
    return headers


@pytest.fixture
def owner_headers(workshop):
    return auth_headers(workshop["owner"])


@pytest.fixture
def member_headers(workshop):
    return auth_headers(workshop["member"])


@pytest.fixture
async def admin_user(db):
    admin = User(name="Suporte", email="suporte@oficina.local", role=UserRole.ADMIN_SAAS.value)
    db.add(admin)
    await db.commit()
    return admin


@pytest.fixture
async def suspended_workshop(db, workshop):
    return await seed_workshop(
        db,
        name="Oficina Suspensa",
        status=TenantStatus.SUSPENDED.value,
        email_prefix="suspended",
    )


# ------------------------------------------------------------
# Helpers de fluxo
# ------------------------------------------------------------

async def create_order(client, headers, workshop, price=100.0, quantity=1, **extra) -> dict:
    payload = {
        "vehicle_id": workshop["vehicle"].id,
        "scheduled_at": datetime.utcnow().isoformat(),
        "assigned_to_id": workshop["member"].id,
        "items": [{"custom_name": "Polimento", "price": price, "quantity": quantity}],
        **extra,
    }
    response = await client.post("/api/orders", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def move_to(client, headers, order_id, *statuses) -> dict:
    data = None
    for target in statuses:
        response = await client.patch(
            f"/api/orders/{order_id}/status", json={"status": target}, headers=headers
        )
        assert response.status_code == 200, response.text
        data = response.json()
    return data


async def open_awaiting_payment(client, headers, workshop, price=100.0) -> dict:
    order = await create_order(client, headers, workshop, price=price)
    return await move_to(
        client, headers, order["id"], "EM_VISTORIA", "EM_EXECUCAO", "AGUARDANDO_PAGAMENTO"
    )


async def create_inspection(client, headers, order_id, inspection_type="entrada") -> dict:
    response = await client.post(
        "/api/inspections",
        json={"order_id": order_id, "type": inspection_type},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def fill_required_items(client, headers, inspection: dict, skip: int = 0):
    required = [i for i in inspection["items"] if i["is_required"]]
    for item in required[skip:]:
        response = await client.patch(
            f"/api/inspections/items/{item['id']}", json={"status": "ok"}, headers=headers
        )
        assert response.status_code == 200, response.text


async def complete_final_inspection(client, headers, order_id) -> dict:
    inspection = await create_inspection(client, headers, order_id, "final")
    await fill_required_items(client, headers, inspection)
    response = await client.post(f"/api/inspections/{inspection['id']}/complete", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()
