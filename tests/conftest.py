import pytest
from decimal import Decimal
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from atorwala.core.backend_client import BackendError
from atorwala.core.notices import NoticeBoard
from atorwala.db.base import Base
from atorwala.db.models import Product, PromoCode, Order
from atorwala.schemas.product import Product as CatalogProduct
from atorwala.services.cart import CartStore
from atorwala.services.promo import PromoCodeField, PromoValidator


DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeBackend:
    """In-memory stand-in for the storefront backend that records every call."""

    def __init__(self, products=None, promo_codes=None):
        self.products = products if products is not None else [
            {"id": "mystic-blossom", "name": "Mystic Blossom", "price": 250, "target_audience": "girls"},
            {"id": "attar-mini", "name": "Attar Mini", "price": 100},
        ]
        self.promo_codes = promo_codes if promo_codes is not None else {"SAVE10": 10}
        self.orders = []
        self.calls = []
        self.fail_on = set()
        self._counter = 0

    def _record(self, operation: str):
        self.calls.append(operation)
        if operation in self.fail_on:
            raise BackendError(f"{operation} failed: backend unavailable", status_code=503)

    async def list_products(self):
        self._record("list_products")
        return list(self.products)

    async def validate_promo_code(self, code):
        self._record("validate_promo_code")
        percent = self.promo_codes.get(code.upper())
        if percent is None:
            return [{"is_valid": False, "discount_percent": 0}]
        return [{"is_valid": True, "discount_percent": percent}]

    async def generate_order_number(self):
        self._record("generate_order_number")
        self._counter += 1
        return f"ORD-TEST-{self._counter:04d}"

    async def insert_order(self, record):
        self._record("insert_order")
        self.orders.append(record)


@pytest.fixture
async def engine():
    engine = create_async_engine(DATABASE_URL, echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def notices():
    return NoticeBoard()


@pytest.fixture
def promo(backend, notices):
    return PromoCodeField(PromoValidator(backend), debounce_seconds=0, notices=notices)


@pytest.fixture
def cart():
    return CartStore()


@pytest.fixture
def blossom():
    return CatalogProduct(id="mystic-blossom", name="Mystic Blossom", price=Decimal("250"), image_url="/img/mb.jpg")


@pytest.fixture
def mini():
    return CatalogProduct(id="attar-mini", name="Attar Mini", price=Decimal("100"), image_url="/img/mini.jpg")
