"""Unit tests for the Stripe payment gateway."""

from unittest.mock import patch

import pytest
import stripe

from shop_service.errors import PaymentGatewayError
from shop_service.payments import StripePaymentGateway, to_minor_units


@pytest.mark.parametrize(
    "amount, cents",
    [(47.2, 4720), (0.1 + 0.2, 30), (19.999, 2000), (10, 1000), (0.005, 1)],
)
def test_to_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def test_create_intent():
    """The intent is created in USD minor units with the configured key."""
    stripe_intent = {
        "id": "pi_1",
        "client_secret": "pi_1_secret_x",
        "amount": 4720,
        "currency": "usd",
        "status": "requires_payment_method",
    }
    with patch.object(stripe.PaymentIntent, "create", return_value=stripe_intent) as mock_create:
        intent = StripePaymentGateway("sk_test_1").create_intent(47.2, metadata={"user": "user-1"})

    mock_create.assert_called_once_with(
        amount=4720, currency="USD", metadata={"user": "user-1"}, api_key="sk_test_1"
    )
    assert intent.client_secret == "pi_1_secret_x"
    assert intent.amount == 4720


def test_create_intent_gateway_error():
    error = stripe.InvalidRequestError("Amount must be at least $0.50 usd", param="amount")
    with patch.object(stripe.PaymentIntent, "create", side_effect=error):
        with pytest.raises(PaymentGatewayError) as exc_info:
            StripePaymentGateway("sk_test_1").create_intent(0.1)

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Amount must be at least $0.50 usd"


def test_retrieve_intent():
    stripe_intent = {"id": "pi_1", "amount": 4720, "currency": "usd", "status": "succeeded"}
    with patch.object(stripe.PaymentIntent, "retrieve", return_value=stripe_intent) as mock_retrieve:
        intent = StripePaymentGateway("sk_test_1").retrieve_intent("pi_1")

    mock_retrieve.assert_called_once_with("pi_1", api_key="sk_test_1")
    assert intent.status == "succeeded"
    assert intent.client_secret is None
