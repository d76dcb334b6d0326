from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from retailops.database import Base
from retailops.utils.clock import utcnow


class SaleState(str, enum.Enum):
    """Lifecycle of a sale transaction while it is being created."""
    VALIDATING = "validating"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Sale(Base):
    """
    Sale model representing one voucher in the sale ledger.

    Attributes:
        id: Unique identifier for the sale
        voucher_number: Caller-supplied voucher number (unique)
        total_amount: Sum of quantity * sale price over all lines
        profit: Sum of quantity * (sale price - cost price at time of sale)
        date: When the sale happened (defaults to creation time, UTC)
        items: Ordered line items, owned by the sale
    """
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    voucher_number = Column(String(100), nullable=False, unique=True, index=True)
    total_amount = Column(Float, nullable=False)
    profit = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.id"
    )

    def __repr__(self):
        return f"<Sale(id={self.id}, voucher='{self.voucher_number}', total={self.total_amount})>"


class SaleItem(Base):
    """
    One line of a sale.

    The product name, code and cost price are snapshotted when the sale is
    created so totals stay meaningful after the product changes or is deleted.
    """
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String(255), nullable=False)
    product_code = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    sale_price = Column(Float, nullable=False)
    cost_price = Column(Float, nullable=False)

    sale = relationship("Sale", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint('quantity >= 1', name='check_line_quantity_positive'),
        CheckConstraint('sale_price > 0', name='check_sale_price_positive'),
    )

    def __repr__(self):
        return f"<SaleItem(sale_id={self.sale_id}, product_id={self.product_id}, quantity={self.quantity})>"
