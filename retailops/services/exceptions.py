class RetailOpsError(Exception):
    """Base class for errors raised by the service layer."""
    pass


class InvalidRequestError(RetailOpsError):
    """The request is malformed or breaks a business rule on its own fields."""
    pass


class MissingFieldError(InvalidRequestError):
    """A required field was not supplied."""
    pass


class InvalidSaleError(InvalidRequestError):
    """The sale header (e.g. the voucher number) is invalid."""
    pass


class InvalidLineItemError(InvalidRequestError):
    """A sale line has a non-positive quantity or sale price."""
    pass


class ConflictError(RetailOpsError):
    """A unique key is already taken."""
    pass


class DuplicateVoucherError(ConflictError):
    pass


class DuplicateProductError(ConflictError):
    pass


class DuplicateSupplierError(ConflictError):
    pass


class NotFoundError(RetailOpsError):
    """The referenced record doesn't exist."""
    pass


class ProductNotFoundError(NotFoundError):
    pass


class SupplierNotFoundError(NotFoundError):
    pass


class SaleNotFoundError(NotFoundError):
    pass


class InsufficientStockError(RetailOpsError):
    """Exception raised when there's not enough stock to fulfill a sale line."""

    def __init__(self, product_name: str, available: int, requested: int):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Insufficient stock for product "{product_name}". '
            f"Available: {available}, Requested: {requested}"
        )
