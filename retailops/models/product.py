from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from retailops.database import Base


class ProductCategory(str, enum.Enum):
    """Fixed set of product categories."""
    PISTOL = "Pistol"
    RIFLE = "Rifle"


class Product(Base):
    """
    Product model representing an item held in inventory.

    Attributes:
        id: Internal identifier
        product_code: Externally assigned product code (unique)
        name: Display name (unique)
        quantity: Units in stock (never negative)
        cost_price: Unit cost (must be positive)
        category: One of ProductCategory
        supplier_id: Optional reference to the supplier
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    cost_price = Column(Float, nullable=False)
    category = Column(Enum(ProductCategory, name="product_category"), nullable=False)
    supplier_id = Column(
        Integer,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="products")

    # Database-level constraints to ensure data integrity
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='check_quantity_non_negative'),
        CheckConstraint('cost_price > 0', name='check_cost_price_positive'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.product_code}', quantity={self.quantity})>"
