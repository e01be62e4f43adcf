"""
Stripe Payment Gateway (stripe.com)

Hosted Checkout for payment collection, Refunds API for reversals, and the
Stripe-Signature scheme (HMAC-SHA256 over "<timestamp>.<payload>") for
webhook authentication.

Documentation: https://docs.stripe.com/payments/checkout
"""
import logging
from decimal import Decimal
from typing import Optional, List

import stripe
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.core.exceptions import WebhookSignatureError
from app.models.webhook import GatewayEvent
from app.services.gateways.base import BaseGateway, to_minor_units

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


class StripeGateway(BaseGateway):
    """Stripe implementation using the official SDK"""

    def __init__(self):
        self.api_key = settings.stripe_secret_key
        self.currency = settings.stripe_currency

    @property
    def name(self) -> str:
        return "stripe"

    @property
    def display_name(self) -> str:
        return "Stripe"

    async def create_checkout_session(
        self,
        amount: Decimal,
        customer_id: str,
        description: str,
        success_url: str,
        cancel_url: str,
        payment_ids: Optional[List[int]] = None
    ) -> Optional[str]:
        metadata = {
            "customer_id": customer_id,
            "description": description,
        }
        if payment_ids:
            metadata["payment_ids"] = ",".join(str(p) for p in payment_ids)

        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create,
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[{
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": to_minor_units(amount),
                        "product_data": {
                            "name": "Event Ticket",
                            "description": description,
                        },
                    },
                    "quantity": 1,
                }],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed for customer {customer_id}: {e}")
            return None

        logger.info(f"Stripe checkout session {session.id} created for payments {metadata.get('payment_ids')}")
        return session.url

    async def create_refund(self, intent_id: str, amount: Decimal) -> Optional[str]:
        try:
            refund = await run_in_threadpool(
                stripe.Refund.create,
                api_key=self.api_key,
                payment_intent=intent_id,
                amount=to_minor_units(amount),
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund failed for intent {intent_id}: {e}")
            return None

        logger.info(f"Stripe refund {refund.id} created for intent {intent_id}")
        return refund.id

    def construct_webhook_event(
        self,
        raw_body: bytes,
        signature_header: str,
        endpoint_secret: str
    ) -> GatewayEvent:
        try:
            stripe.Webhook.construct_event(
                raw_body,
                signature_header,
                endpoint_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature rejected: {e}")
            raise WebhookSignatureError(f"Signature verification failed: {e}")
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid webhook payload: {e}")

        try:
            return GatewayEvent.model_validate_json(raw_body)
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid webhook payload: {e}")
