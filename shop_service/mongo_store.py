"""MongoDB backend for the catalog and order stores."""

from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from .errors import PaymentAlreadyUsedError, ProductNotFoundError
from .logger import logger
from .schemas import Order, OrderStatus, Product, ProductCreate


def _object_id(value: str) -> ObjectId | None:
    """Parse a hex id; malformed ids match nothing."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _from_doc(doc: dict[str, Any]) -> dict[str, Any]:
    doc = dict(doc)
    doc["_id"] = str(doc["_id"])
    return doc


def connect(uri: str, db_name: str) -> Database:
    """Create the shared client and return the service database."""
    client = MongoClient(uri, tz_aware=True)
    logger.info(f"MongoDB client created for database '{db_name}'")
    return client[db_name]


class MongoCatalogStore:
    """Products collection. Stock changes use single-document conditional updates."""

    def __init__(self, db: Database):
        self._products: Collection = db["products"]

    def create_product(self, product: ProductCreate) -> Product:
        doc = Product(**product.model_dump()).model_dump(by_alias=True, exclude={"id"})
        result = self._products.insert_one(doc)
        doc["_id"] = str(result.inserted_id)
        return Product.model_validate(doc)

    def get_product(self, product_id: str) -> Product | None:
        oid = _object_id(product_id)
        if oid is None:
            return None
        doc = self._products.find_one({"_id": oid})
        return Product.model_validate(_from_doc(doc)) if doc else None

    def list_products(self) -> list[Product]:
        return [Product.model_validate(_from_doc(doc)) for doc in self._products.find({})]

    def set_stock(self, product_id: str, stock: int) -> Product | None:
        oid = _object_id(product_id)
        if oid is None:
            return None
        doc = self._products.find_one_and_update(
            {"_id": oid},
            {"$set": {"stock": stock}},
            return_document=ReturnDocument.AFTER,
        )
        return Product.model_validate(_from_doc(doc)) if doc else None

    def reserve_stock(self, product_id: str, quantity: int) -> bool:
        oid = _object_id(product_id)
        if oid is None:
            raise ProductNotFoundError(product_id)
        doc = self._products.find_one_and_update(
            {"_id": oid, "stock": {"$gte": quantity}},
            {"$inc": {"stock": -quantity}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            return True
        if self._products.count_documents({"_id": oid}, limit=1) == 0:
            raise ProductNotFoundError(product_id)
        return False

    def release_stock(self, product_id: str, quantity: int) -> None:
        oid = _object_id(product_id)
        result = self._products.update_one({"_id": oid}, {"$inc": {"stock": quantity}})
        if result.matched_count == 0:
            raise ProductNotFoundError(product_id)

    def ping(self) -> bool:
        try:
            self._products.database.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False


class MongoOrderStore:
    """Orders collection."""

    def __init__(self, db: Database):
        self._orders: Collection = db["orders"]

    def ensure_indexes(self) -> None:
        """Create the indexes the order queries rely on."""
        self._orders.create_index([("user", ASCENDING)])
        self._orders.create_index(
            [("paymentInfo.id", ASCENDING)],
            unique=True,
            partialFilterExpression={"paymentInfo.id": {"$type": "string"}},
        )

    def insert_order(self, order: Order) -> Order:
        doc = order.model_dump(by_alias=True, exclude={"id"})
        doc["orderStatus"] = order.order_status.value
        try:
            result = self._orders.insert_one(doc)
        except DuplicateKeyError as e:
            raise PaymentAlreadyUsedError() from e
        doc["_id"] = str(result.inserted_id)
        return Order.model_validate(doc)

    def get_order(self, order_id: str) -> Order | None:
        oid = _object_id(order_id)
        if oid is None:
            return None
        doc = self._orders.find_one({"_id": oid})
        return Order.model_validate(_from_doc(doc)) if doc else None

    def list_orders(self, user: str | None = None) -> list[Order]:
        query = {} if user is None else {"user": user}
        return [Order.model_validate(_from_doc(doc)) for doc in self._orders.find(query)]

    def find_by_payment_intent(self, intent_id: str) -> Order | None:
        doc = self._orders.find_one({"paymentInfo.id": intent_id})
        return Order.model_validate(_from_doc(doc)) if doc else None

    def update_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new_status: OrderStatus,
        delivered_at: datetime | None = None,
    ) -> bool:
        oid = _object_id(order_id)
        if oid is None:
            return False
        update: dict[str, Any] = {"orderStatus": new_status.value}
        if delivered_at is not None:
            update["deliveredAt"] = delivered_at
        result = self._orders.update_one(
            {"_id": oid, "orderStatus": expected.value},
            {"$set": update},
        )
        return result.modified_count == 1

    def ping(self) -> bool:
        try:
            self._orders.database.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False
