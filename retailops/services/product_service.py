from sqlalchemy.orm import Session
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Iterable
import logging

from retailops.models.product import Product
from retailops.models.sale import SaleItem
from retailops.models.supplier import Supplier
from retailops.schemas.product import ProductCreate, ProductUpdate
from retailops.services.exceptions import DuplicateProductError, SupplierNotFoundError
from retailops.services.report_service import invalidate_report_cache
from retailops.utils.cache import CacheService

logger = logging.getLogger(__name__)


class ProductService:
    """
    Service class for Product CRUD operations.

    This service handles:
    - Creating products (code and name must both be unused)
    - Reading products
    - Updating products (merge of the supplied fields)
    - Deleting products (sale lines keep their snapshot, lose the reference)
    - Finding products that are running low
    """

    def __init__(self, db: Session, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance

        Raises:
            DuplicateProductError: If the product code or the name is taken
            SupplierNotFoundError: If the referenced supplier doesn't exist
        """
        code = product_data.product_code
        name = product_data.name

        if self._find_by(Product.product_code, code):
            raise DuplicateProductError(
                f'Product with ID "{code}" already exists. Please use a different Product ID.'
            )
        if self._find_by(Product.name, name):
            raise DuplicateProductError(
                f'Product with name "{name}" already exists. Please use a different name.'
            )
        if product_data.supplier_id is not None:
            self._require_supplier(product_data.supplier_id)

        product = Product(
            product_code=code,
            name=name,
            quantity=product_data.quantity,
            cost_price=product_data.cost_price,
            category=product_data.category,
            supplier_id=product_data.supplier_id
        )
        self.db.add(product)
        self._commit()
        self.db.refresh(product)

        invalidate_report_cache(self.cache)
        logger.info(f"Product #{product.id} ({code}) created with quantity {product.quantity}")

        return product

    def get_by_id(self, product_id: int) -> Optional[Product]:
        """Get a product by ID."""
        return self.db.get(Product, product_id)

    def get_all(self) -> List[Product]:
        """Get every product, oldest first."""
        return self.db.query(Product).order_by(Product.id).all()

    def update(self, product_id: int, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update an existing product.

        Uniqueness of code and name is left to the database constraints.

        Args:
            product_id: ID of product to update
            product_data: Update data (only supplied fields are updated)

        Returns:
            Updated product or None if not found
        """
        product = self.db.get(Product, product_id)

        if not product:
            return None

        update_data = product_data.model_dump(exclude_unset=True)
        if update_data.get("supplier_id") is not None:
            self._require_supplier(update_data["supplier_id"])

        for field, value in update_data.items():
            # An explicit null only makes sense for the optional supplier link
            if value is None and field != "supplier_id":
                continue
            setattr(product, field, value)

        self._commit()
        self.db.refresh(product)

        invalidate_report_cache(self.cache)

        return product

    def delete(self, product_id: int) -> bool:
        """
        Delete a product.

        Sale lines that reference it are detached, not removed.

        Args:
            product_id: ID of product to delete

        Returns:
            True if deleted, False if not found
        """
        product = self.db.get(Product, product_id)

        if not product:
            return False

        try:
            self.db.execute(
                update(SaleItem)
                .where(SaleItem.product_id == product_id)
                .values(product_id=None)
            )
            self.db.delete(product)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        invalidate_report_cache(self.cache)
        logger.info(f"Product #{product_id} deleted")

        return True

    def find_low_stock(self, threshold: int, product_ids: Optional[Iterable[int]] = None) -> List[Product]:
        """
        Products whose quantity is at or below ``threshold``.

        Args:
            threshold: Stock level to compare against
            product_ids: Restrict the check to these products

        Returns:
            Matching products, lowest stock first
        """
        query = select(Product).where(Product.quantity <= threshold)
        if product_ids is not None:
            query = query.where(Product.id.in_(list(product_ids)))
        query = query.order_by(Product.quantity, Product.name)
        return list(self.db.execute(query).scalars().all())

    def _find_by(self, column, value) -> Optional[Product]:
        return self.db.execute(select(Product).where(column == value)).scalars().first()

    def _require_supplier(self, supplier_id: int) -> None:
        if not self.db.get(Supplier, supplier_id):
            raise SupplierNotFoundError(f"Supplier with ID {supplier_id} not found")

    def _commit(self) -> None:
        """Commit, mapping a unique-key violation to DuplicateProductError."""
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error saving product: {e}")
            raise DuplicateProductError(
                "A product with this productId or name already exists. "
                "Please use a different productId or name."
            )
