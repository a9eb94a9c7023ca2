"""Test fixtures for the shop service tests."""

from unittest.mock import MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from shop_service.auth import TokenVerifier
from shop_service.schemas import PaymentIntent, PlaceOrderRequest, ProductCreate
from shop_service.server import create_app
from shop_service.store import InMemoryCatalogStore, InMemoryOrderStore
from shop_service.workflow import OrderWorkflow

JWT_SECRET = "test-secret"


@pytest.fixture
def catalog():
    """In-memory catalog store."""
    return InMemoryCatalogStore()


@pytest.fixture
def orders():
    """In-memory order store."""
    return InMemoryOrderStore()


@pytest.fixture
def gateway():
    """Payment gateway double returning a fixed intent."""
    gateway = MagicMock()
    gateway.create_intent.return_value = PaymentIntent(
        id="pi_123", client_secret="pi_123_secret_abc", amount=4720, currency="USD", status="requires_payment_method"
    )
    gateway.retrieve_intent.return_value = PaymentIntent(
        id="pi_123", client_secret=None, amount=4720, currency="USD", status="succeeded"
    )
    return gateway


@pytest.fixture
def workflow(catalog, orders, gateway):
    """Workflow over the in-memory stores without event publishing."""
    return OrderWorkflow(catalog=catalog, orders=orders, gateway=gateway)


@pytest.fixture
def product(catalog):
    """A product with five units in stock."""
    return catalog.create_product(ProductCreate(name="Mug", price=12.5, stock=5))


@pytest.fixture
def make_request():
    """Build a place-order request for (product_id, quantity) pairs."""

    def _make(*items, payment_method="COD", payment_info=None, total_amount=47.2):
        return PlaceOrderRequest.model_validate(
            {
                "shippingInfo": {
                    "address": "221B Baker Street",
                    "city": "London",
                    "country": "GB",
                    "pinCode": 110001,
                    "phoneNo": 5550100,
                },
                "orderItems": [{"product": pid, "quantity": qty} for pid, qty in items],
                "paymentMethod": payment_method,
                "paymentInfo": payment_info,
                "itemsPrice": 40.0,
                "taxPrice": 7.2,
                "shippingCharges": 0,
                "totalAmount": total_amount,
            }
        )

    return _make


def make_token(user_id: str, role: str = "user") -> str:
    return jwt.encode({"sub": user_id, "role": role}, JWT_SECRET, algorithm="HS256")


@pytest.fixture
def test_client(workflow):
    """Create a test client for the FastAPI app."""
    app = create_app(workflow, TokenVerifier(JWT_SECRET))
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {make_token('user-1')}"}


@pytest.fixture
def other_user_headers():
    return {"Authorization": f"Bearer {make_token('user-2')}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token('admin-1', role='admin')}"}
