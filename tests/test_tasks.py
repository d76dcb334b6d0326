"""Tests for the background stock check task."""
from unittest.mock import patch

import pytest
from celery.exceptions import Retry
from sqlalchemy.exc import OperationalError

from retailops.models.product import Product, ProductCategory
from retailops.services.product_service import ProductService
from retailops.tasks import stock_tasks
from retailops.tasks.stock_tasks import check_stock_levels


@pytest.fixture
def worker_database(database, monkeypatch):
    """Point the task at the test database instead of opening its own."""
    monkeypatch.setattr(stock_tasks, "_database", database)
    return database


def _add_products(session, *quantities):
    products = [
        Product(
            product_code=f"S{i:03d}",
            name=f"Stock {i}",
            quantity=quantity,
            cost_price=100,
            category=ProductCategory.RIFLE
        )
        for i, quantity in enumerate(quantities, start=1)
    ]
    session.add_all(products)
    session.commit()
    return [product.id for product in products]


def test_find_low_stock(db_session):
    """Test products at or below the threshold are found, lowest first."""
    ids = _add_products(db_session, 10, 5, 0, 6)

    low = ProductService(db_session).find_low_stock(5)

    assert [p.id for p in low] == [ids[2], ids[1]]


def test_find_low_stock_limited_to_ids(db_session):
    ids = _add_products(db_session, 1, 2, 3)

    low = ProductService(db_session).find_low_stock(5, [ids[0], ids[2]])

    assert {p.id for p in low} == {ids[0], ids[2]}


def test_check_stock_levels_reports_low_products(worker_database, db_session):
    """Test the task returns only the sold products that are running low."""
    ids = _add_products(db_session, 2, 40, 1)

    result = check_stock_levels.run(ids[:2])

    assert result["status"] == "checked"
    assert result["threshold"] == 5
    assert result["low_stock"] == [
        {"id": ids[0], "product_id": "S001", "name": "Stock 1", "quantity": 2}
    ]


def test_check_stock_levels_nothing_low(worker_database, db_session):
    ids = _add_products(db_session, 30)

    result = check_stock_levels.run(ids)

    assert result["low_stock"] == []


def test_check_stock_levels_retries_on_database_error(worker_database):
    """Test a database failure schedules a retry."""
    error = OperationalError("SELECT 1", {}, Exception("database is locked"))

    with patch.object(ProductService, "find_low_stock", side_effect=error), \
            patch.object(check_stock_levels, "retry", side_effect=Retry()) as retry:
        with pytest.raises(Retry):
            check_stock_levels.run([1])

    retry.assert_called_once_with(exc=error, countdown=30, max_retries=3)
