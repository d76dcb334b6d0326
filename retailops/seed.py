"""
Populate an empty database with demo suppliers and a product.

Usage:
    python -m retailops.seed

Records that already exist (matched by supplier name / product code) are
left alone, so the script can be run repeatedly.
"""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from retailops.config import get_settings
from retailops.database import Database
from retailops.utils.logging import configure_logging
from retailops.models.product import Product, ProductCategory
from retailops.models.supplier import Supplier

logger = logging.getLogger(__name__)

DEMO_SUPPLIERS = [
    {
        "name": "ABC Arms Supplier",
        "contact": "03001234567",
        "address": "Karachi, Pakistan",
        "payment_terms": "30 days",
    },
    {
        "name": "XYZ Weapons Co",
        "contact": "03007654321",
        "address": "Lahore, Pakistan",
        "payment_terms": "15 days",
    },
]

DEMO_PRODUCTS = [
    {
        "product_code": "A001",
        "name": "PX3 CHINA 30 BORE",
        "quantity": 10,
        "cost_price": 35000,
        "category": ProductCategory.PISTOL,
        "supplier": "ABC Arms Supplier",
    },
]


def seed(db: Session) -> dict:
    """Insert the demo records that are missing; return how many were added."""
    added = {"suppliers": 0, "products": 0}

    suppliers = {}
    for data in DEMO_SUPPLIERS:
        supplier = db.execute(select(Supplier).where(Supplier.name == data["name"])).scalars().first()
        if supplier is None:
            supplier = Supplier(**data)
            db.add(supplier)
            added["suppliers"] += 1
        suppliers[supplier.name] = supplier
    db.flush()

    for data in DEMO_PRODUCTS:
        data = dict(data)
        supplier = suppliers.get(data.pop("supplier"))
        exists = db.execute(
            select(Product.id).where(Product.product_code == data["product_code"])
        ).first()
        if exists:
            continue
        db.add(Product(**data, supplier_id=supplier.id if supplier else None))
        added["products"] += 1

    db.commit()
    logger.info(f"Seeded {added['suppliers']} supplier(s) and {added['products']} product(s)")
    return added


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    database = Database.from_settings(settings)
    database.create_all()
    db = database.session()
    try:
        seed(db)
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
