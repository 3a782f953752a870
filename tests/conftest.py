"""Fixtures compartidos: base SQLite en memoria, fuente Amazon simulada y reintentos sin espera."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from app.core.config import get_settings
from app.db.amazon_clients import MockAmazonSource
from app.db.connection import ConnDB
from app.db.store import OrderRepository, ShippingDefaultsRepository
from app.services.labels import LabelPurchaseOrchestrator
from app.utils.retry_handler import RetryHandler, RetryPolicy

TEST_ENV = {
    "ENVIRONMENT": "testing",
    "DATABASE_URL": "sqlite+aiosqlite://",
    "USE_MOCK": "true",
    "AMAZON_MAX_RETRIES": "3",
    "AMAZON_RETRY_BASE_DELAY_MS": "1000",
    "ZPL_INJECT_X": "50",
    "ZPL_INJECT_Y": "1100",
    "ZPL_SKU_MAX_LENGTH": "20",
    "BULK_MAX_ORDERS": "50",
}

SHIP_FROM = {
    "Name": "Magazzino Test",
    "AddressLine1": "Via Roma 1",
    "City": "Roma",
    "StateOrProvinceCode": "RM",
    "PostalCode": "00100",
    "CountryCode": "IT",
    "Phone": "0000000000",
}


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Configuración determinística para cada test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def ship_from():
    return dict(SHIP_FROM)


@pytest.fixture
def sleep_mock():
    return AsyncMock()


@pytest.fixture
def retry_handler(sleep_mock):
    """Handler con la política por defecto (3 reintentos, 1000 ms) y sleep simulado."""
    return RetryHandler(name="test", retry_policy=RetryPolicy(max_retries=3, base_delay_ms=1000), sleep=sleep_mock)


@pytest.fixture
def mock_source(retry_handler):
    return MockAmazonSource(retry_handler=retry_handler)


@pytest_asyncio.fixture
async def conn_db():
    db = ConnDB(database_url="sqlite+aiosqlite://")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def order_repository(conn_db):
    repository = OrderRepository(conn_db)
    await repository.initialize()
    return repository


@pytest_asyncio.fixture
async def defaults_repository(conn_db):
    repository = ShippingDefaultsRepository(conn_db)
    await repository.initialize()
    return repository


@pytest_asyncio.fixture
async def synced_orders(mock_source, order_repository):
    """Órdenes Prime simuladas ya guardadas en la base local."""
    orders = await mock_source.fetch_unshipped_prime_orders()
    await order_repository.upsert_orders(orders)
    return orders


@pytest.fixture
def orchestrator(mock_source, order_repository, defaults_repository, ship_from):
    return LabelPurchaseOrchestrator(
        label_source=mock_source,
        order_store=order_repository,
        defaults_store=defaults_repository,
        ship_from=ship_from,
    )
