from retailops.models.product import Product, ProductCategory
from retailops.models.sale import Sale, SaleItem
from retailops.models.supplier import Supplier

__all__ = ["Product", "ProductCategory", "Sale", "SaleItem", "Supplier"]
