import logging
from typing import List, Optional

from celery.signals import worker_process_init, worker_process_shutdown
from sqlalchemy.exc import SQLAlchemyError

from retailops.config import get_settings
from retailops.database import Database
from retailops.services.product_service import ProductService
from retailops.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

# Each worker process owns one database handle, opened and closed by the
# worker lifecycle signals below.
_database: Optional[Database] = None


@worker_process_init.connect
def init_worker_database(**kwargs) -> None:
    global _database
    _database = Database.from_settings(get_settings())
    logger.info("Worker database handle opened")


@worker_process_shutdown.connect
def close_worker_database(**kwargs) -> None:
    global _database
    if _database is not None:
        _database.dispose()
        _database = None


def get_worker_database() -> Database:
    """Return this process's database handle, opening it on first use."""
    if _database is None:
        init_worker_database()
    return _database


@celery_app.task(bind=True, name="check_stock_levels")
def check_stock_levels(self, product_ids: List[int]) -> dict:
    """
    Background task run after a sale is committed.

    Looks at the products that were just sold and logs a warning for each one
    at or below LOW_STOCK_THRESHOLD.

    Args:
        product_ids: IDs of the products on the sale

    Returns:
        Dictionary with the low-stock products found
    """
    threshold = get_settings().LOW_STOCK_THRESHOLD
    logger.info(f"Checking stock levels for products {product_ids}")

    db = get_worker_database().session()

    try:
        low_stock = ProductService(db).find_low_stock(threshold, product_ids)

        for product in low_stock:
            logger.warning(
                f"Low stock: {product.name} ({product.product_code}) "
                f"has {product.quantity} unit(s) left"
            )

        return {
            "status": "checked",
            "threshold": threshold,
            "low_stock": [
                {
                    "id": product.id,
                    "product_id": product.product_code,
                    "name": product.name,
                    "quantity": product.quantity,
                }
                for product in low_stock
            ],
        }

    except SQLAlchemyError as e:
        logger.error(f"Error checking stock levels for {product_ids}: {e}")
        raise self.retry(exc=e, countdown=30, max_retries=3)

    finally:
        db.close()
