"""
Stripe payment intents.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

import stripe

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "usd"


def to_minor_units(price: Union[int, float, str, Decimal]) -> int:
    """Convert a decimal price to cents, rounding half up."""
    cents = Decimal(str(price)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway:
    def __init__(self, api_key: str, payment_method_types: Optional[List[str]] = None):
        self.api_key = api_key
        self.payment_method_types = payment_method_types or ["card"]

    def create_payment_intent(self, amount: int, currency: str = DEFAULT_CURRENCY) -> str:
        """
        Create a PaymentIntent and return its client secret.

        Raises stripe.StripeError when the provider rejects the request.
        """
        intent = stripe.PaymentIntent.create(
            api_key=self.api_key,
            amount=amount,
            currency=currency,
            payment_method_types=self.payment_method_types,
        )
        logger.info(f"Created payment intent {intent.id} for {amount} {currency}")
        return intent.client_secret
