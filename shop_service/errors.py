"""Exceptions raised by the shop service and their HTTP status codes."""


class ShopError(Exception):
    """Base exception for all shop service errors.

    Attributes:
        message: Message returned to the client.
        status_code: HTTP status code of the response.
    """

    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InsufficientStockError(ShopError):
    """Raised when a line item asks for more units than the product has in stock."""

    status_code = 400
    message = "Insufficient stock for one or more products."


class ProductNotFoundError(ShopError):
    """Raised when a line item or request references an unknown product."""

    status_code = 404
    message = "Product Not Found"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__()


class OrderNotFoundError(ShopError):
    status_code = 404
    message = "Order Not Found"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__()


class OrderAlreadyDeliveredError(ShopError):
    status_code = 400
    message = "Order Already Delivered"


class OrderStatusConflictError(ShopError):
    """Raised when the order status changed between read and update."""

    status_code = 409
    message = "Order Status Changed Concurrently"


class PaymentNotConfirmedError(ShopError):
    status_code = 400
    message = "Payment Not Confirmed"


class PaymentAlreadyUsedError(ShopError):
    status_code = 409
    message = "Payment Already Used For Another Order"


class PaymentGatewayError(ShopError):
    """Raised when the payment processor rejects or fails a request."""

    status_code = 502
    message = "Payment gateway error"


class StockReconciliationError(ShopError):
    """Raised when a reservation could not be released after a failed order write."""

    status_code = 500
    message = "Stock reconciliation required"


class NotAuthenticatedError(ShopError):
    status_code = 401
    message = "Not Logged In"


class NotAuthorizedError(ShopError):
    status_code = 403
    message = "Only Admin Allowed"
