"""
Base Payment Gateway Interface

Every gateway exposes the same three operations: open a hosted checkout
session, refund a settled payment, and turn a signed webhook delivery into a
verified event.
"""
from abc import ABC, abstractmethod
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List

from app.models.webhook import GatewayEvent


def to_minor_units(amount: Decimal) -> int:
    """Money to integer cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BaseGateway(ABC):
    """
    Abstract base class for payment gateways.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway identifier (e.g., 'stripe')"""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable gateway name"""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        amount: Decimal,
        customer_id: str,
        description: str,
        success_url: str,
        cancel_url: str,
        payment_ids: Optional[List[int]] = None
    ) -> Optional[str]:
        """
        Create a hosted checkout page for `amount`.

        `payment_ids` travel in the session metadata so the completion
        webhook can find the local payments again.

        Returns:
            Checkout URL, or None if the gateway refused
        """
        pass

    @abstractmethod
    async def create_refund(self, intent_id: str, amount: Decimal) -> Optional[str]:
        """
        Refund `amount` against a settled payment intent.

        Returns:
            Gateway refund id, or None on failure
        """
        pass

    @abstractmethod
    def construct_webhook_event(
        self,
        raw_body: bytes,
        signature_header: str,
        endpoint_secret: str
    ) -> GatewayEvent:
        """
        Verify the signature over the raw body and parse the event.

        Raises:
            WebhookSignatureError: signature mismatch, stale timestamp or unreadable payload
        """
        pass
