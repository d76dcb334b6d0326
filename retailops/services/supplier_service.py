from sqlalchemy.orm import Session
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
import logging

from retailops.models.product import Product
from retailops.models.supplier import Supplier
from retailops.schemas.supplier import SupplierCreate, SupplierUpdate
from retailops.services.exceptions import DuplicateSupplierError
from retailops.services.report_service import invalidate_report_cache
from retailops.utils.cache import CacheService

logger = logging.getLogger(__name__)


class SupplierService:
    """Service class for Supplier CRUD operations."""

    def __init__(self, db: Session, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache

    def create(self, supplier_data: SupplierCreate) -> Supplier:
        """
        Create a new supplier.

        Raises:
            DuplicateSupplierError: If the name or the contact is already in use
        """
        name = supplier_data.name
        contact = supplier_data.contact

        if self.db.execute(select(Supplier).where(Supplier.name == name)).scalars().first():
            raise DuplicateSupplierError(
                f'Supplier with name "{name}" already exists. Please use a different name.'
            )
        if self.db.execute(select(Supplier).where(Supplier.contact == contact)).scalars().first():
            raise DuplicateSupplierError(
                f'Supplier with contact "{contact}" already exists. Please use a different contact.'
            )

        supplier = Supplier(
            name=name,
            contact=contact,
            address=supplier_data.address,
            payment_terms=supplier_data.payment_terms
        )
        self.db.add(supplier)
        self._commit()
        self.db.refresh(supplier)

        invalidate_report_cache(self.cache)
        logger.info(f"Supplier #{supplier.id} ({name}) created")

        return supplier

    def get_by_id(self, supplier_id: int) -> Optional[Supplier]:
        """Get a supplier by ID."""
        return self.db.get(Supplier, supplier_id)

    def get_all(self) -> List[Supplier]:
        """Get every supplier, oldest first."""
        return self.db.query(Supplier).order_by(Supplier.id).all()

    def update(self, supplier_id: int, supplier_data: SupplierUpdate) -> Optional[Supplier]:
        """Merge the supplied fields onto an existing supplier, or return None if missing."""
        supplier = self.db.get(Supplier, supplier_id)

        if not supplier:
            return None

        update_data = supplier_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            # Name and contact are required; address and payment terms may be cleared
            if value is None and field not in ("address", "payment_terms"):
                continue
            setattr(supplier, field, value)

        self._commit()
        self.db.refresh(supplier)

        return supplier

    def delete(self, supplier_id: int) -> bool:
        """
        Delete a supplier.

        Products that reference it keep existing with no supplier.

        Returns:
            True if deleted, False if not found
        """
        supplier = self.db.get(Supplier, supplier_id)

        if not supplier:
            return False

        try:
            result = self.db.execute(
                update(Product)
                .where(Product.supplier_id == supplier_id)
                .values(supplier_id=None)
            )
            self.db.delete(supplier)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        invalidate_report_cache(self.cache)
        logger.info(f"Supplier #{supplier_id} deleted, {result.rowcount} product(s) unlinked")

        return True

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error saving supplier: {e}")
            raise DuplicateSupplierError(
                "A supplier with this name or contact already exists. "
                "Please use a different name or contact."
            )
