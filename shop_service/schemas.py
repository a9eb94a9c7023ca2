"""Pydantic models for products, orders and payment requests."""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON with the storefront client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class OrderStatus(str, Enum):
    """Lifecycle stages of an order."""

    PREPARING = "Preparing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"


class ShippingInfo(CamelModel):
    """Where an order is shipped. Unknown keys are kept as sent."""

    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str | None = None
    country: str = Field(..., min_length=1)
    pin_code: str = Field(..., min_length=1)
    phone_no: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class OrderItem(CamelModel):
    """A line item: the product identity and the requested quantity."""

    product: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    name: str | None = None
    price: float | None = Field(default=None, ge=0)
    image: str | None = None


class PaymentInfo(CamelModel):
    """Payment details sent with the order; ``id`` is the payment intent id."""

    id: str | None = None
    status: str | None = None

    model_config = ConfigDict(extra="allow")


class PlaceOrderRequest(CamelModel):
    """Body of the place-order request.

    Attributes:
        shipping_info (ShippingInfo): Destination of the order.
        order_items (list[OrderItem]): Line items, at least one required.
        payment_method (str): 'COD' (cash on delivery) or 'ONLINE'.
        payment_info (PaymentInfo | None): Payment details, required for ONLINE orders.
        items_price (float): Subtotal computed by the client.
        tax_price (float): Tax computed by the client.
        shipping_charges (float): Shipping computed by the client.
        total_amount (float): Grand total computed by the client.
    """

    shipping_info: ShippingInfo
    order_items: list[OrderItem] = Field(..., min_length=1)
    payment_method: Literal["COD", "ONLINE"] = "COD"
    payment_info: PaymentInfo | None = None
    items_price: float = Field(..., ge=0)
    tax_price: float = Field(..., ge=0)
    shipping_charges: float = Field(..., ge=0)
    total_amount: float = Field(..., ge=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "shippingInfo": {
                    "address": "221B Baker Street",
                    "city": "London",
                    "country": "GB",
                    "pinCode": "NW16XE",
                    "phoneNo": "5550100",
                },
                "orderItems": [{"product": "65f1c0ffee0000000000abcd", "quantity": 2}],
                "paymentMethod": "COD",
                "itemsPrice": 40.0,
                "taxPrice": 7.2,
                "shippingCharges": 0,
                "totalAmount": 47.2,
            }
        }
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(CamelModel):
    """A persisted order."""

    id: str | None = Field(default=None, alias="_id")
    user: str
    shipping_info: ShippingInfo
    order_items: list[OrderItem]
    payment_method: Literal["COD", "ONLINE"] = "COD"
    payment_info: PaymentInfo | None = None
    items_price: float
    tax_price: float
    shipping_charges: float
    total_amount: float
    order_status: OrderStatus = OrderStatus.PREPARING
    created_at: datetime = Field(default_factory=_utcnow)
    delivered_at: datetime | None = None

    @property
    def payment_intent_id(self) -> str | None:
        return self.payment_info.id if self.payment_info else None


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    price: float = Field(..., ge=0)
    category: str | None = None
    stock: int = Field(..., ge=0)


class Product(ProductCreate):
    """A catalog product. Stock never goes below zero."""

    id: str | None = Field(default=None, alias="_id")
    created_at: datetime = Field(default_factory=_utcnow)


class StockUpdate(CamelModel):
    stock: int = Field(..., ge=0)


class PaymentIntentRequest(CamelModel):
    total_amount: float = Field(..., gt=0)


class PaymentIntent(BaseModel):
    """The parts of a gateway payment intent this service relies on."""

    id: str
    client_secret: str | None = None
    amount: int
    currency: str
    status: str


class Identity(BaseModel):
    """Caller identity taken from a verified token."""

    user_id: str
    role: Literal["user", "admin"] = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
