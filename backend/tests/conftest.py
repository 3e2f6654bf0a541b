"""
Pytest configuration and shared fixtures for the Order Service tests.

Provides an in-memory SQLite DB, fake user directory and product catalog
(the catalog records every call in order), an in-memory metrics sink, a
wired orchestrator and an HTTP client bound to the FastAPI app.
"""
import pytest
from decimal import Decimal
from typing import AsyncGenerator

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from domain.errors import InsufficientStockError, ProductNotFoundError
from services.catalog_client import ProductCatalogClient, ProductSnapshot
from services.order_metrics import OrderMetrics
from services.order_orchestrator import OrderOrchestrator
from services.order_store import SqlAlchemyOrderStore
from services.user_client import UserDirectoryClient

# ── Sample data ──────────────────────────────────────────────────────

USER_ID = 1
UNKNOWN_USER_ID = 999
PRODUCT_A = 101   # price 10.00
PRODUCT_B = 102   # price 5.00
PRODUCT_C = 103   # price 2.50
ADDRESS = "12 rue de la Paix, 75002 Paris"


# ── Fakes ────────────────────────────────────────────────────────────


class FakeUserDirectory(UserDirectoryClient):
    def __init__(self, existing=(USER_ID,)):
        self.existing = set(existing)
        self.calls: list[int] = []
        self.error: Exception | None = None
        self.healthy = True

    async def exists(self, user_id: int) -> bool:
        self.calls.append(user_id)
        if self.error is not None:
            raise self.error
        return user_id in self.existing

    async def health_check(self) -> bool:
        return self.healthy


class FakeCatalog(ProductCatalogClient):
    """
    In-memory catalog with an atomic, self-guarding adjust_stock.

    ``calls`` holds ("get", id) and ("adjust", id, delta) tuples in call order.
    ``failures`` maps (product_id, delta) to an exception raised by adjust_stock.
    """

    def __init__(self):
        self.products: dict[int, dict] = {}
        self.calls: list[tuple] = []
        self.failures: dict[tuple[int, int], Exception] = {}
        self.snapshot_failures: dict[int, Exception] = {}
        self.healthy = True

    def add_product(self, product_id: int, name: str, price: str, stock: int) -> None:
        self.products[product_id] = {"name": name, "price": Decimal(price), "stock": stock}

    def stock(self, product_id: int) -> int:
        return self.products[product_id]["stock"]

    @property
    def adjustments(self) -> list[tuple[int, int]]:
        return [(c[1], c[2]) for c in self.calls if c[0] == "adjust"]

    async def get_snapshot(self, product_id: int) -> ProductSnapshot:
        self.calls.append(("get", product_id))
        if product_id in self.snapshot_failures:
            raise self.snapshot_failures[product_id]
        product = self.products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return ProductSnapshot(
            id=product_id, name=product["name"], price=product["price"], stock=product["stock"]
        )

    async def adjust_stock(self, product_id: int, delta: int) -> None:
        self.calls.append(("adjust", product_id, delta))
        if (product_id, delta) in self.failures:
            raise self.failures[(product_id, delta)]
        product = self.products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        if product["stock"] + delta < 0:
            raise InsufficientStockError(product_id, requested=-delta, available=product["stock"])
        product["stock"] += delta

    async def health_check(self) -> bool:
        return self.healthy


# ── Database Fixtures ────────────────────────────────────────────────


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    import db_models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def order_store(db_session: AsyncSession) -> SqlAlchemyOrderStore:
    return SqlAlchemyOrderStore(db_session)


# ── Collaborator Fixtures ────────────────────────────────────────────


@pytest.fixture
def user_directory() -> FakeUserDirectory:
    return FakeUserDirectory()


@pytest.fixture
def catalog() -> FakeCatalog:
    c = FakeCatalog()
    c.add_product(PRODUCT_A, "Widget A", "10.00", stock=10)
    c.add_product(PRODUCT_B, "Widget B", "5.00", stock=5)
    c.add_product(PRODUCT_C, "Widget C", "2.50", stock=3)
    return c


@pytest.fixture
def metrics() -> OrderMetrics:
    return OrderMetrics()


@pytest.fixture
def orchestrator(user_directory, catalog, order_store, metrics) -> OrderOrchestrator:
    return OrderOrchestrator(user_directory, catalog, order_store, metrics)


# ── HTTP Client ──────────────────────────────────────────────────────


@pytest.fixture
async def api_client(db_session, user_directory, catalog, metrics) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the FastAPI app with every collaborator overridden.

    Overrides get_db to use the test DB session.
    """
    from main import app
    from deps import get_catalog_client, get_metrics, get_user_client

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_user_client] = lambda: user_directory
    app.dependency_overrides[get_catalog_client] = lambda: catalog
    app.dependency_overrides[get_metrics] = lambda: metrics

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
