"""Catalog and order store interfaces, with the in-memory backend."""

import threading
import uuid
from datetime import datetime
from typing import Protocol

from .errors import PaymentAlreadyUsedError, ProductNotFoundError
from .schemas import Order, OrderStatus, Product, ProductCreate


class CatalogStore(Protocol):
    """Persistence of catalog products.

    Every method is atomic on a single product record; nothing spans records.
    """

    def create_product(self, product: ProductCreate) -> Product: ...

    def get_product(self, product_id: str) -> Product | None: ...

    def list_products(self) -> list[Product]: ...

    def set_stock(self, product_id: str, stock: int) -> Product | None: ...

    def reserve_stock(self, product_id: str, quantity: int) -> bool:
        """Decrement stock by ``quantity`` only if at least that many units are left.

        Returns:
            bool: True if the decrement was applied, False if stock was insufficient.

        Raises:
            ProductNotFoundError: If the product does not exist.
        """
        ...

    def release_stock(self, product_id: str, quantity: int) -> None:
        """Give ``quantity`` units back to the product."""
        ...

    def ping(self) -> bool: ...


class OrderStore(Protocol):
    """Persistence of orders."""

    def insert_order(self, order: Order) -> Order: ...

    def get_order(self, order_id: str) -> Order | None: ...

    def list_orders(self, user: str | None = None) -> list[Order]: ...

    def find_by_payment_intent(self, intent_id: str) -> Order | None: ...

    def update_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        delivered_at: datetime | None = None,
    ) -> bool:
        """Move the order to ``new_status`` if it is still in ``expected``.

        Returns:
            bool: True if the order was updated, False if its status had changed.
        """
        ...

    def ping(self) -> bool: ...


def _new_id() -> str:
    return uuid.uuid4().hex[:24]


class InMemoryCatalogStore:
    """Thread-safe catalog kept in a dict, for tests and local runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._products: dict[str, Product] = {}

    def create_product(self, product: ProductCreate) -> Product:
        created = Product(_id=_new_id(), **product.model_dump())
        with self._lock:
            self._products[created.id] = created
        return created.model_copy(deep=True)

    def get_product(self, product_id: str) -> Product | None:
        with self._lock:
            product = self._products.get(product_id)
            return product.model_copy(deep=True) if product else None

    def list_products(self) -> list[Product]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._products.values()]

    def set_stock(self, product_id: str, stock: int) -> Product | None:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            product.stock = stock
            return product.model_copy(deep=True)

    def reserve_stock(self, product_id: str, quantity: int) -> bool:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if product.stock < quantity:
                return False
            product.stock -= quantity
            return True

    def release_stock(self, product_id: str, quantity: int) -> None:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            product.stock += quantity

    def ping(self) -> bool:
        return True


class InMemoryOrderStore:
    """Thread-safe order store kept in a dict, for tests and local runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._orders: dict[str, Order] = {}

    def insert_order(self, order: Order) -> Order:
        created = order.model_copy(update={"id": _new_id()}, deep=True)
        with self._lock:
            intent_id = created.payment_intent_id
            if intent_id and any(o.payment_intent_id == intent_id for o in self._orders.values()):
                raise PaymentAlreadyUsedError()
            self._orders[created.id] = created
        return created.model_copy(deep=True)

    def get_order(self, order_id: str) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
            return order.model_copy(deep=True) if order else None

    def list_orders(self, user: str | None = None) -> list[Order]:
        with self._lock:
            orders = self._orders.values()
            if user is not None:
                orders = [o for o in orders if o.user == user]
            return [o.model_copy(deep=True) for o in orders]

    def find_by_payment_intent(self, intent_id: str) -> Order | None:
        with self._lock:
            for order in self._orders.values():
                if order.payment_intent_id == intent_id:
                    return order.model_copy(deep=True)
        return None

    def update_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        delivered_at: datetime | None = None,
    ) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or order.order_status != expected:
                return False
            order.order_status = new_status
            if delivered_at is not None:
                order.delivered_at = delivered_at
            return True

    def ping(self) -> bool:
        return True
