"""
Payment gateway webhook reconciliation.

Each verified event is recorded in processed_webhook_events in the same
transaction as the payment updates it causes, so a redelivered event id
changes nothing. Confirmation e-mails are collected on the outcome and sent
by the caller after the transaction has committed.
"""
import logging
from typing import Optional, List

from app.config import settings
from app.core.exceptions import ValidationError
from app.models.payment import Payment, PaymentStatus
from app.models.webhook import GatewayEvent, TicketConfirmation, WebhookOutcome
from app.repositories import get_repositories, Repositories
from app.services.gateways import get_gateway

logger = logging.getLogger(__name__)


def parse_payment_ids(raw: Optional[str]) -> List[int]:
    """'12, 13,x,14' -> [12, 13, 14]; unparseable entries are skipped"""
    payment_ids = []
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdigit():
            payment_ids.append(int(part))
    return payment_ids


class WebhookEventHandler:
    """Applies one verified gateway event through the given repositories."""

    def __init__(self, repos: Repositories, outcome: WebhookOutcome):
        self.repos = repos
        self.outcome = outcome

    async def handle(self, event: GatewayEvent) -> None:
        handler = getattr(self, f"handle_{event.type.replace('.', '_')}", self.handle_unknown_event)
        await handler(event)

    async def handle_unknown_event(self, event: GatewayEvent) -> None:
        logger.info(f"Unhandled webhook event type: {event.type} ({event.id})")

    async def handle_checkout_session_completed(self, event: GatewayEvent) -> None:
        session = event.object
        metadata = event.metadata()
        intent_id = session.get("payment_intent")
        payment_ids = parse_payment_ids(metadata.get("payment_ids"))

        if not payment_ids:
            logger.warning(f"No payment_ids in metadata for checkout session {session.get('id')}")
            return

        logger.info(f"Checkout session {session.get('id')} completed for payments {payment_ids} (customer {metadata.get('customer_id')})")

        for payment_id in payment_ids:
            payment = await self.repos.payments.transition(
                payment_id, PaymentStatus.PENDING, PaymentStatus.COMPLETED, intent_id
            )
            if not payment:
                logger.warning(f"Payment {payment_id} not found or not pending")
                continue

            self.outcome.payment_ids.append(payment.id)
            logger.info(f"Payment {payment.id} marked as completed")

            confirmation = await self._confirmation_for(payment)
            if confirmation:
                self.outcome.confirmations.append(confirmation)

        logger.info(f"Updated {len(self.outcome.payment_ids)} of {len(payment_ids)} payments for session {session.get('id')}")

    async def handle_payment_intent_succeeded(self, event: GatewayEvent) -> None:
        intent_id = event.object.get("id")
        for payment in await self.repos.payments.list_by_intent_id(intent_id):
            updated = await self.repos.payments.transition(payment.id, PaymentStatus.PENDING, PaymentStatus.COMPLETED)
            if updated:
                self.outcome.payment_ids.append(updated.id)
                logger.info(f"Payment {updated.id} marked as completed for intent {intent_id}")

    async def handle_payment_intent_payment_failed(self, event: GatewayEvent) -> None:
        intent_id = event.object.get("id")
        for payment in await self.repos.payments.list_by_intent_id(intent_id):
            updated = await self.repos.payments.transition(payment.id, PaymentStatus.PENDING, PaymentStatus.FAILED)
            if updated:
                self.outcome.payment_ids.append(updated.id)
                logger.info(f"Payment {updated.id} marked as failed for intent {intent_id}")

    async def handle_charge_dispute_created(self, event: GatewayEvent) -> None:
        dispute = event.object
        intent_id = dispute.get("payment_intent")
        if not intent_id:
            logger.warning(f"Dispute {dispute.get('id')} has no payment intent reference")
            return

        for payment in await self.repos.payments.list_by_intent_id(intent_id):
            if await self.repos.payments.update_status(payment.id, PaymentStatus.FAILED):
                self.outcome.payment_ids.append(payment.id)
                # Ticket stays as issued; disputes are resolved by an admin
                logger.warning(
                    f"Payment {payment.id} marked as failed due to dispute {dispute.get('id')}; "
                    f"ticket {payment.ticket_id} left unchanged"
                )

    async def _confirmation_for(self, payment: Payment) -> Optional[TicketConfirmation]:
        ticket = await self.repos.tickets.get_by_id(payment.ticket_id)
        if not ticket:
            return None

        event = await self.repos.events.get_by_id(ticket.event_id)
        customer = await self.repos.users.get_by_id(ticket.customer_id)
        if not event or not customer:
            logger.warning(f"Cannot build confirmation for payment {payment.id}: event or customer missing")
            return None

        return TicketConfirmation(
            payment_id=payment.id,
            ticket_id=ticket.id,
            qr_code=ticket.qr_code,
            price=ticket.price,
            seat_number=ticket.seat_number,
            customer_email=customer.email,
            customer_name=customer.full_name,
            event_title=event.title,
            event_date=event.date,
            event_location=event.location,
        )


async def handle_webhook(raw_body: bytes, signature_header: Optional[str]) -> WebhookOutcome:
    """
    Verify and apply one gateway delivery.

    Raises:
        ValidationError: secret not configured, signature header missing or empty body
        WebhookSignatureError: signature does not match
    """
    endpoint_secret = settings.stripe_webhook_secret

    logger.info(
        f"Webhook received - body length: {len(raw_body or b'')}, "
        f"has signature: {bool(signature_header)}, has secret: {bool(endpoint_secret)}"
    )

    if not endpoint_secret:
        logger.error("Webhook secret not configured")
        raise ValidationError("Webhook secret not configured")

    if not signature_header:
        raise ValidationError("Missing Stripe-Signature header")

    if not raw_body:
        raise ValidationError("Empty webhook body")

    gateway = get_gateway(settings.payment_gateway)
    event = gateway.construct_webhook_event(raw_body, signature_header, endpoint_secret)

    logger.info(f"Verified webhook {event.type} with id {event.id}")

    outcome = WebhookOutcome(event_id=event.id, event_type=event.type)

    async with get_repositories() as repos:
        if not await repos.webhook_events.record(event.id, event.type):
            logger.info(f"Webhook event {event.id} already processed, skipping")
            outcome.duplicate = True
            return outcome

        await WebhookEventHandler(repos, outcome).handle(event)

    return outcome
