"""Stripe payment intent gateway."""

from decimal import ROUND_HALF_UP, Decimal

import stripe

from .errors import PaymentGatewayError
from .logger import logger
from .schemas import PaymentIntent

CURRENCY = "USD"


def to_minor_units(amount: float) -> int:
    """Convert a decimal currency amount to cents, rounding half up.

    Args:
        amount: Amount in currency units (e.g. 47.2).

    Returns:
        int: Amount in minor units (e.g. 4720).
    """
    cents = Decimal(str(amount)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentGateway:
    """Creates and looks up Stripe payment intents with a single configured key.

    Attributes:
        _api_key: Stripe secret key passed on every request.
    """

    def __init__(self, api_key: str):
        self._api_key = api_key

    def create_intent(self, amount: float, metadata: dict[str, str] | None = None) -> PaymentIntent:
        """Create a payment intent for ``amount`` in USD.

        Args:
            amount: Total in currency units.
            metadata: Optional metadata stored on the intent by Stripe.

        Returns:
            PaymentIntent: The created intent, including its client secret.

        Raises:
            PaymentGatewayError: If Stripe rejects the request.
        """
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=CURRENCY,
                metadata=metadata or {},
                api_key=self._api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {e}")
            raise PaymentGatewayError(e.user_message or str(e)) from e
        return _to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch a payment intent by id.

        Raises:
            PaymentGatewayError: If Stripe rejects the request.
        """
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self._api_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent lookup failed for {intent_id}: {e}")
            raise PaymentGatewayError(e.user_message or str(e)) from e
        return _to_intent(intent)


def _to_intent(intent) -> PaymentIntent:
    return PaymentIntent(
        id=intent["id"],
        client_secret=intent.get("client_secret"),
        amount=intent["amount"],
        currency=intent["currency"],
        status=intent["status"],
    )
