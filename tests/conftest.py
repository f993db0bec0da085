from decimal import Decimal
from types import SimpleNamespace
import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from storefront.db.dependencies import get_session
from storefront.main import app
from storefront.schema.full_schema import GiftBox, Product
from storefront.user.dependencies import create_access_token

TEST_DATABASE_URL = "sqlite+aiosqlite://"

url_prefix = "/api/v1"


@pytest.fixture
async def engine():
    # one shared in-memory connection, every session sees the same tables
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, connect_args={"check_same_thread": False})
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def catalog(session_factory):
    almonds = Product(
        name="Organic Almonds", slug="organic-almonds", price=Decimal("100"), sale_price=Decimal("80"),
        pack_sizes=["250g", "500g", "1kg"],
        pack_prices=[{"pack_size": "500g", "price": 150, "sale_price": 120}],
        image_url="https://cdn.example.com/almonds.jpg",
    )
    cashews = Product(name="Premium Cashews", slug="premium-cashews", price=Decimal("50"))
    walnuts = Product(name="Walnut Kernels", slug="walnut-kernels", price=Decimal("30"), in_stock=False)
    festive = GiftBox(name="Festive Box", price=Decimal("45"), contents=["almonds", "cashews"])

    async with session_factory() as session:
        session.add_all([almonds, cashews, walnuts, festive])
        await session.commit()

    return SimpleNamespace(almonds=almonds, cashews=cashews, walnuts=walnuts, festive=festive)


def auth_headers(owner_id: str = "user-1", roles=None):
    return {"Authorization": f"Bearer {create_access_token(owner_id, roles)}"}


@pytest.fixture
async def ac_client(session_factory):

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    try:
        async with LifespanManager(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                yield ac
    finally:
        app.dependency_overrides.clear()
