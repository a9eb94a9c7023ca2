"""Order placement and order lifecycle operations."""

from datetime import datetime, timezone
from typing import Callable, Protocol

from .errors import (
    InsufficientStockError,
    OrderAlreadyDeliveredError,
    OrderNotFoundError,
    OrderStatusConflictError,
    PaymentAlreadyUsedError,
    PaymentNotConfirmedError,
    StockReconciliationError,
)
from .logger import logger
from .payments import to_minor_units
from .producer import OrderEventProducer
from .schemas import Identity, Order, OrderStatus, PaymentIntent, PlaceOrderRequest
from .store import CatalogStore, OrderStore

NEXT_STATUS = {
    OrderStatus.PREPARING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}

PAYMENT_SUCCEEDED = "succeeded"


class PaymentGateway(Protocol):
    def create_intent(self, amount: float, metadata: dict[str, str] | None = None) -> PaymentIntent: ...

    def retrieve_intent(self, intent_id: str) -> PaymentIntent: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def merge_line_items(request: PlaceOrderRequest) -> dict[str, int]:
    """Total requested quantity per product, in first-seen order."""
    quantities: dict[str, int] = {}
    for item in request.order_items:
        quantities[item.product] = quantities.get(item.product, 0) + item.quantity
    return quantities


class OrderWorkflow:
    """Stateless orchestrator over the catalog store, the order store and the payment gateway.

    Stock for an order is reserved with one conditional decrement per product.
    Any failure before the order is written gives the whole reservation back,
    so a request either creates its order with stock taken, or changes nothing.

    Attributes:
        catalog: Product persistence.
        orders: Order persistence.
        gateway: Payment intent gateway.
        producer: Optional publisher of order events.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        orders: OrderStore,
        gateway: PaymentGateway,
        producer: OrderEventProducer | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.catalog = catalog
        self.orders = orders
        self.gateway = gateway
        self.producer = producer
        self._clock = clock

    # -- payments ---------------------------------------------------------

    def create_payment_intent(self, user_id: str, total_amount: float) -> PaymentIntent:
        """Ask the gateway for a USD payment intent covering ``total_amount``."""
        intent = self.gateway.create_intent(total_amount, metadata={"user": user_id})
        logger.info(f"Payment intent {intent.id} created for user {user_id} ({intent.amount} minor units)")
        return intent

    def _verify_payment(self, request: PlaceOrderRequest) -> None:
        info = request.payment_info
        if info is None or not info.id:
            raise PaymentNotConfirmedError()
        intent = self.gateway.retrieve_intent(info.id)
        if intent.status != PAYMENT_SUCCEEDED or intent.amount != to_minor_units(request.total_amount):
            logger.warning(
                f"Payment intent {intent.id} rejected: status={intent.status}, amount={intent.amount}, "
                f"expected={to_minor_units(request.total_amount)}"
            )
            raise PaymentNotConfirmedError()
        if self.orders.find_by_payment_intent(info.id) is not None:
            raise PaymentAlreadyUsedError()

    # -- placement --------------------------------------------------------

    def place_order(self, user_id: str, request: PlaceOrderRequest) -> Order:
        """Reserve stock for every line item and create the order.

        Args:
            user_id: Identity of the buyer.
            request: The validated order body.

        Returns:
            Order: The created order, status Preparing.

        Raises:
            ProductNotFoundError: A line item references an unknown product.
            InsufficientStockError: Some product has fewer units than requested.
            PaymentNotConfirmedError: An ONLINE order without a succeeded payment of the right amount.
            PaymentAlreadyUsedError: The payment intent already paid for another order.
            StockReconciliationError: A reservation could not be given back after a failure.
        """
        if request.payment_method == "ONLINE":
            self._verify_payment(request)

        reserved = self._reserve(merge_line_items(request))

        order = Order(
            user=user_id,
            shipping_info=request.shipping_info,
            order_items=request.order_items,
            payment_method=request.payment_method,
            payment_info=request.payment_info,
            items_price=request.items_price,
            tax_price=request.tax_price,
            shipping_charges=request.shipping_charges,
            total_amount=request.total_amount,
            order_status=OrderStatus.PREPARING,
            created_at=self._clock(),
        )
        try:
            created = self.orders.insert_order(order)
        except Exception as e:
            logger.error(f"Order creation failed for user {user_id}, releasing reserved stock: {e}")
            self._release(reserved)
            raise

        logger.info(f"Order {created.id} placed by user {user_id} ({len(reserved)} products)")
        self._publish(self.producer.publish_order_placed if self.producer else None, created)
        return created

    def _reserve(self, quantities: dict[str, int]) -> dict[str, int]:
        reserved: dict[str, int] = {}
        try:
            for product_id, quantity in quantities.items():
                if not self.catalog.reserve_stock(product_id, quantity):
                    logger.info(f"Insufficient stock for product {product_id} (requested {quantity})")
                    raise InsufficientStockError()
                reserved[product_id] = quantity
        except Exception:
            self._release(reserved)
            raise
        return reserved

    def _release(self, reserved: dict[str, int]) -> None:
        failed: dict[str, int] = {}
        for product_id, quantity in reserved.items():
            try:
                self.catalog.release_stock(product_id, quantity)
            except Exception as e:
                logger.error(f"Could not release {quantity} units of product {product_id}: {e}")
                failed[product_id] = quantity
        if failed:
            logger.error(f"Stock needs reconciliation: {failed}")
            raise StockReconciliationError()

    # -- lifecycle --------------------------------------------------------

    def advance_status(self, order_id: str) -> Order:
        """Move an order one step along Preparing -> Shipped -> Delivered.

        Raises:
            OrderNotFoundError: No order has this id.
            OrderAlreadyDeliveredError: The order is already Delivered.
            OrderStatusConflictError: Another request advanced the order first.
        """
        order = self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.order_status == OrderStatus.DELIVERED:
            raise OrderAlreadyDeliveredError()

        new_status = NEXT_STATUS[order.order_status]
        delivered_at = self._clock() if new_status == OrderStatus.DELIVERED else None
        if not self.orders.update_status(order_id, order.order_status, new_status, delivered_at):
            raise OrderStatusConflictError()

        updated = order.model_copy(update={"order_status": new_status, "delivered_at": delivered_at})
        logger.info(f"Order {order_id} moved {order.order_status.value} -> {new_status.value}")
        self._publish(self.producer.publish_status_changed if self.producer else None, updated)
        return updated

    # -- reads ------------------------------------------------------------

    def list_orders(self) -> list[Order]:
        return self.orders.list_orders()

    def list_user_orders(self, user_id: str) -> list[Order]:
        return self.orders.list_orders(user=user_id)

    def get_order(self, order_id: str, identity: Identity | None = None) -> Order:
        """Fetch one order; callers other than its owner or an admin see it as missing.

        Raises:
            OrderNotFoundError: No visible order has this id.
        """
        order = self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if identity is not None and not identity.is_admin and order.user != identity.user_id:
            raise OrderNotFoundError(order_id)
        return order

    def _publish(self, publish: Callable[[Order], None] | None, order: Order) -> None:
        if publish is None:
            return
        try:
            publish(order)
        except Exception as e:
            # The order is already committed; the event is best effort.
            logger.warning(f"Failed to publish event for order {order.id}: {e}")
