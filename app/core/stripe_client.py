# app/core/stripe_client.py
from typing import Any

import stripe


class StripeGateway:
    """
    Stripe API access with the secret key bound per call.

    Use cases:
      - create / retrieve PaymentIntents
      - refund a captured PaymentIntent
      - verify and decode webhook payloads

    Errors are Stripe's own (`stripe.StripeError`,
    `stripe.SignatureVerificationError`, ValueError for bad JSON);
    the payment service maps them.
    """

    def __init__(self, api_key: str | None, webhook_secret: str | None = None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
    ) -> Any:
        return stripe.PaymentIntent.create(
            amount=amount,
            currency=currency,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            api_key=self.api_key,
        )

    def retrieve_payment_intent(self, intent_id: str) -> Any:
        return stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)

    def create_refund(self, intent_id: str) -> Any:
        return stripe.Refund.create(payment_intent=intent_id, api_key=self.api_key)

    def construct_event(self, payload: bytes, signature: str) -> Any:
        if not self.webhook_secret:
            raise ValueError("Stripe webhook secret is not configured")
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
