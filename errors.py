"""Exceptions raised by the checkout services, each carrying its HTTP status."""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500


class InvalidRequestError(StorefrontError):
    """Raised when a request is missing required fields or carries malformed values."""

    status_code = 400


class ProductNotFoundError(StorefrontError):
    """Raised when a cart line references a product that isn't in the catalog."""

    status_code = 400

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStockError(StorefrontError):
    """Raised when a cart line asks for more units than the catalog holds."""

    status_code = 400

    def __init__(self, product_id: str, name: str, remaining: int):
        self.product_id = product_id
        self.remaining = remaining
        super().__init__(f'"{name}" is out of stock. Only {remaining} left.')


class SignatureMismatchError(StorefrontError):
    """Raised when a payment signature doesn't match the recomputed one."""

    status_code = 400

    def __init__(self):
        # Never say which part of the comparison failed.
        super().__init__("Payment verification failed")


class OrderNotFoundError(StorefrontError):
    status_code = 404

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class OrderAlreadySettledError(StorefrontError):
    """Raised inside a settlement transaction when the order is no longer pending."""

    status_code = 409

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order already settled: {order_id}")


class GatewayError(StorefrontError):
    """Raised when the payment gateway can't be reached or rejects a request."""

    status_code = 500


class OrderCancelledError(StorefrontError):
    """Raised when a payment arrives for an order that has been cancelled."""

    status_code = 409

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order has been cancelled. Please contact support.")


class CatalogDataError(StorefrontError):
    """Raised when a catalog document can't be priced (missing or non-integer price)."""

    status_code = 500

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product has no valid price: {product_id}")
