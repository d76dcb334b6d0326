from sqlalchemy.orm import Session, selectinload
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from typing import Optional, List, Dict
import logging

from retailops.models.product import Product
from retailops.models.sale import Sale, SaleItem, SaleState
from retailops.schemas.sale import SaleCreate, SaleItemCreate
from retailops.services.exceptions import (
    DuplicateVoucherError,
    InsufficientStockError,
    InvalidLineItemError,
    InvalidSaleError,
    MissingFieldError,
    ProductNotFoundError,
    SaleNotFoundError,
)
from retailops.services.report_service import invalidate_report_cache
from retailops.utils.cache import CacheService
from retailops.utils.clock import utcnow, to_naive_utc

logger = logging.getLogger(__name__)


class SaleService:
    """
    Service class for the sale ledger, with stock handled atomically.

    STOCK CONSISTENCY STRATEGY:
    ===========================
    Creating a sale runs in two passes inside one database transaction:

    1. VALIDATING - every line is checked in order (fields, product exists,
       enough stock for the total requested of that product). Nothing is
       written, so a rejected sale leaves no trace.
    2. COMMITTING - every line is applied as a conditional update:

           UPDATE products SET quantity = quantity - :q
           WHERE id = :id AND quantity >= :q

       If another request took the stock after validation, the UPDATE
       touches 0 rows; the whole transaction is rolled back, which also
       undoes the decrements already applied for earlier lines.

    The sale row is inserted in the same transaction. The UNIQUE constraint
    on voucher_number is the real duplicate guard; the lookup done up front
    only gives the caller a friendlier message.
    """

    def __init__(self, db: Session, cache: Optional[CacheService] = None):
        self.db = db
        self.cache = cache
        self.state: Optional[SaleState] = None

    def create_sale(self, sale_data: SaleCreate) -> Sale:
        """
        Create a sale and take its quantities out of stock.

        Args:
            sale_data: Voucher number, ordered line items and optional date

        Returns:
            The persisted sale

        Raises:
            MissingFieldError: If the voucher or the line items are missing
            InvalidSaleError: If the voucher number is blank
            DuplicateVoucherError: If the voucher number is already used
            InvalidLineItemError: If a line has a non-positive quantity or price
            ProductNotFoundError: If a line references an unknown product
            InsufficientStockError: If a product doesn't have enough stock
        """
        if sale_data.voucher_number is None or not sale_data.products:
            raise MissingFieldError(
                "Missing required fields: voucherNumber and at least one product are required"
            )

        voucher_number = sale_data.voucher_number.strip()
        if not voucher_number:
            raise InvalidSaleError("Voucher number cannot be empty")

        if self._voucher_exists(voucher_number):
            raise DuplicateVoucherError(
                f'Sale with voucher number "{voucher_number}" already exists. '
                "Please use a different voucher number."
            )

        items = sale_data.products

        self._transition(SaleState.VALIDATING, voucher_number)
        try:
            self._validate_items(items)
        except Exception:
            self.db.rollback()
            self._transition(SaleState.ROLLED_BACK, voucher_number)
            raise

        self._transition(SaleState.COMMITTING, voucher_number)
        try:
            sale = self._commit_sale(voucher_number, items, sale_data)
        except IntegrityError as e:
            self.db.rollback()
            self._transition(SaleState.ROLLED_BACK, voucher_number)
            if self._voucher_exists(voucher_number):
                logger.warning(f"Voucher {voucher_number} was taken concurrently: {e}")
                raise DuplicateVoucherError(
                    "A sale with this voucher number already exists. "
                    "Please use a different voucher number."
                )
            logger.error(f"Integrity error creating sale {voucher_number}: {e}")
            raise
        except Exception:
            self.db.rollback()
            self._transition(SaleState.ROLLED_BACK, voucher_number)
            raise

        self._transition(SaleState.COMMITTED, voucher_number)
        invalidate_report_cache(self.cache)
        logger.info(
            f"Sale #{sale.id} ({voucher_number}) created: {len(sale.items)} line(s), "
            f"total {sale.total_amount}, profit {sale.profit}"
        )

        return sale

    def delete_sale(self, sale_id: int) -> None:
        """
        Delete a sale and put its quantities back into stock.

        The sale row is deleted first and stock is restored only if that
        DELETE matched it, all in one transaction. Of two concurrent deletes
        of the same sale, only one restores stock.

        Args:
            sale_id: ID of the sale to delete

        Raises:
            SaleNotFoundError: If the sale doesn't exist
        """
        sale = self.db.get(Sale, sale_id)

        if not sale:
            raise SaleNotFoundError(f"Sale with ID {sale_id} not found")

        voucher_number = sale.voucher_number
        lines = [(item.product_id, item.product_code, item.quantity) for item in sale.items]
        # Rows go away with a bulk DELETE; stop tracking the loaded objects
        self.db.expunge(sale)

        try:
            claimed = self.db.execute(
                delete(Sale)
                .where(Sale.id == sale_id)
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount == 0:
                raise SaleNotFoundError(f"Sale with ID {sale_id} not found")

            for product_id, product_code, quantity in lines:
                if product_id is None:
                    logger.warning(
                        f"Sale #{sale_id}: product {product_code} no longer exists, "
                        f"{quantity} unit(s) not restored"
                    )
                    continue
                self.db.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(quantity=Product.quantity + quantity)
                    .execution_options(synchronize_session=False)
                )
            self.db.commit()
        except SaleNotFoundError:
            self.db.rollback()
            logger.warning(f"Sale #{sale_id} ({voucher_number}) was deleted concurrently")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting sale #{sale_id}: {e}")
            raise

        invalidate_report_cache(self.cache)
        logger.info(f"Sale #{sale_id} ({voucher_number}) deleted, stock restored")

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        """Get a sale by ID."""
        return self.db.get(Sale, sale_id)

    def get_sales(self) -> List[Sale]:
        """Get every sale with its lines and products loaded, newest first."""
        return list(
            self.db.execute(
                select(Sale)
                .options(selectinload(Sale.items).selectinload(SaleItem.product))
                .order_by(Sale.date.desc(), Sale.id.desc())
            )
            .scalars()
            .all()
        )

    def _transition(self, state: SaleState, voucher_number: str) -> None:
        logger.debug(f"Sale {voucher_number}: {self.state} -> {state}")
        self.state = state

    def _voucher_exists(self, voucher_number: str) -> bool:
        return self.db.execute(
            select(Sale.id).where(Sale.voucher_number == voucher_number)
        ).first() is not None

    def _validate_items(self, items: List[SaleItemCreate]) -> None:
        """Check every line in order; the first failure rejects the whole sale."""
        requested: Dict[int, int] = {}

        for item in items:
            if item.product_id is None or item.quantity is None or item.sale_price is None:
                raise MissingFieldError("Each product must have product ID, quantity, and sale price")

            if item.quantity <= 0:
                raise InvalidLineItemError("Quantity must be greater than 0")

            if item.sale_price <= 0:
                raise InvalidLineItemError("Sale price must be greater than 0")

            product = self.db.get(Product, item.product_id)
            if not product:
                raise ProductNotFoundError(f"Product with ID {item.product_id} not found")

            # The same product may appear on several lines
            requested[product.id] = requested.get(product.id, 0) + item.quantity
            if product.quantity < requested[product.id]:
                raise InsufficientStockError(product.name, product.quantity, requested[product.id])

    def _commit_sale(self, voucher_number: str, items: List[SaleItemCreate], sale_data: SaleCreate) -> Sale:
        total_amount = 0.0
        profit = 0.0
        lines = []

        for item in items:
            result = self.db.execute(
                update(Product)
                .where(Product.id == item.product_id, Product.quantity >= item.quantity)
                .values(quantity=Product.quantity - item.quantity)
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                self._raise_stock_conflict(item)

            # Read after our own update so the row is already locked for this transaction
            product = self.db.execute(
                select(Product.name, Product.product_code, Product.cost_price)
                .where(Product.id == item.product_id)
            ).one()

            total_amount += item.sale_price * item.quantity
            profit += (item.sale_price - product.cost_price) * item.quantity

            lines.append(SaleItem(
                product_id=item.product_id,
                product_name=product.name,
                product_code=product.product_code,
                quantity=item.quantity,
                sale_price=item.sale_price,
                cost_price=product.cost_price
            ))

        sale = Sale(
            voucher_number=voucher_number,
            total_amount=total_amount,
            profit=profit,
            date=to_naive_utc(sale_data.date) if sale_data.date else utcnow(),
            items=lines
        )

        self.db.add(sale)
        self.db.commit()
        self.db.refresh(sale)

        return sale

    def _raise_stock_conflict(self, item: SaleItemCreate) -> None:
        """Explain why a conditional stock update matched no row."""
        current = self.db.execute(
            select(Product.name, Product.quantity).where(Product.id == item.product_id)
        ).first()

        if current is None:
            raise ProductNotFoundError(f"Product with ID {item.product_id} not found")

        logger.warning(
            f"Stock for {current.name} changed during sale: "
            f"available {current.quantity}, requested {item.quantity}"
        )
        raise InsufficientStockError(current.name, current.quantity, item.quantity)
