import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from retailops.config import Settings
from retailops.database import Database
from retailops.main import create_app


# SQLite in-memory database and no Redis for testing
TEST_SETTINGS = Settings(
    DATABASE_URL="sqlite://",
    CACHE_ENABLED=False,
    LOG_LEVEL="WARNING",
)


@pytest.fixture(autouse=True)
def stock_check_task():
    """Mock the Celery task so tests never need a broker."""
    with patch("retailops.api.sales.check_stock_levels.delay") as mocked:
        yield mocked


@pytest.fixture(scope="function")
def client():
    """Create test client with a fresh database for each test."""
    app = create_app(TEST_SETTINGS)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
def database():
    """Create a database handle for direct access in tests."""
    db = Database(TEST_SETTINGS.DATABASE_URL)
    db.create_all()

    yield db

    db.drop_all()
    db.dispose()


@pytest.fixture(scope="function")
def db_session(database):
    """Create database session for direct database access in tests."""
    session = database.session()

    yield session

    session.close()


@pytest.fixture
def create_supplier(client):
    """Factory creating a supplier through the API and returning its JSON."""
    counter = {"n": 0}

    def _create(**overrides):
        counter["n"] += 1
        payload = {
            "name": f"Supplier {counter['n']}",
            "contact": f"0300000000{counter['n']}",
            "address": "Karachi",
            "paymentTerms": "30 days",
        }
        payload.update(overrides)
        response = client.post("/api/suppliers/", json=payload)
        assert response.status_code == 201, response.json()
        return response.json()

    return _create


@pytest.fixture
def create_product(client):
    """Factory creating a product through the API and returning its JSON."""
    counter = {"n": 0}

    def _create(**overrides):
        counter["n"] += 1
        payload = {
            "productId": f"P{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "quantity": 10,
            "costPrice": 35000,
            "category": "Pistol",
        }
        payload.update(overrides)
        response = client.post("/api/products/", json=payload)
        assert response.status_code == 201, response.json()
        return response.json()

    return _create
