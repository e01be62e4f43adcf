"""
Checkout flow: issue tickets one at a time, record a pending payment for
each, then open a single hosted checkout session for all of them.
"""
import logging
from typing import Optional, List
from decimal import Decimal

from app.config import settings
from app.core.exceptions import NotFoundError, PaymentError, TicketError
from app.models.payment import Payment, PaymentMethod, PaymentStatus, RefundResult
from app.models.ticket import Ticket, CheckoutResult, PurchaseOutcome
from app.services import events_service, tickets_service, payments_service
from app.services.gateways import get_gateway

logger = logging.getLogger(__name__)


def _outcome(issued: int, requested: int) -> PurchaseOutcome:
    if issued == 0:
        return PurchaseOutcome.NONE
    if issued < requested:
        return PurchaseOutcome.PARTIAL
    return PurchaseOutcome.ALL


async def _release(tickets: List[Ticket]) -> None:
    """Undo reservations whose checkout never started"""
    for ticket in tickets:
        await tickets_service.cancel_ticket(ticket.id)
        await payments_service.fail_pending_for_ticket(ticket.id)


async def start_checkout(
    event_id: int,
    customer_id: str,
    quantity: int,
    promotion_code: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None
) -> CheckoutResult:
    """
    Buy up to `quantity` tickets. Each unit is its own purchase, so running
    out part way through is a normal result: the outcome says whether all,
    some or none were issued.

    Raises:
        NotFoundError: event does not exist
        TicketError: event is not on sale
        PaymentError: the gateway would not open a checkout session
    """
    event = await events_service.get_event(event_id)
    if not event:
        raise NotFoundError("Event not found")
    if not event.is_active:
        raise TicketError("This event is not available for ticket purchase")

    tickets: List[Ticket] = []
    payments: List[Payment] = []

    for _ in range(quantity):
        ticket = await tickets_service.purchase_ticket(event_id, customer_id, promotion_code)
        if not ticket:
            break

        payment = await payments_service.process_payment(ticket.id, customer_id, PaymentMethod.STRIPE, ticket.price)
        if not payment:
            await tickets_service.cancel_ticket(ticket.id)
            break

        tickets.append(ticket)
        payments.append(payment)

    result = CheckoutResult(
        outcome=_outcome(len(tickets), quantity),
        requested=quantity,
        tickets=tickets,
        payment_ids=[p.id for p in payments],
        unit_price=tickets[0].price if tickets else Decimal("0"),
        total_amount=sum((t.price for t in tickets), Decimal("0")),
    )

    if result.outcome == PurchaseOutcome.NONE:
        logger.info(f"No tickets issued for event {event_id} (requested {quantity})")
        return result

    if result.outcome == PurchaseOutcome.PARTIAL:
        logger.warning(f"Only {result.issued} of {quantity} tickets issued for event {event_id}")

    if result.total_amount == 0:
        # Nothing to collect
        for payment in payments:
            await payments_service.update_status(payment.id, PaymentStatus.COMPLETED)
        logger.info(f"Free checkout for event {event_id}: payments {result.payment_ids} completed")
        return result

    gateway = get_gateway(settings.payment_gateway)
    description = f"Ticket purchase for {event.title} - {result.issued} ticket(s)"
    checkout_url = await gateway.create_checkout_session(
        result.total_amount,
        customer_id,
        description,
        success_url or f"{settings.frontend_url}/tickets?checkout=success",
        cancel_url or f"{settings.frontend_url}/events/{event_id}",
        payment_ids=result.payment_ids,
    )

    if not checkout_url:
        await _release(tickets)
        raise PaymentError(
            "Failed to create checkout session",
            {"event_id": event_id, "released_tickets": [t.id for t in tickets]}
        )

    result.checkout_url = checkout_url
    logger.info(f"Checkout started for payments {result.payment_ids} on event {event_id}: {result.total_amount}")
    return result


async def cancel_ticket(ticket_id: int) -> bool:
    """Cancel an Active ticket and close any payment still waiting on it"""
    if not await tickets_service.cancel_ticket(ticket_id):
        return False
    await payments_service.fail_pending_for_ticket(ticket_id)
    return True


async def refund_ticket(ticket_id: int) -> RefundResult:
    """
    Refund the ticket's settled charge at the gateway first, then book it
    locally. A ticket with no settled charge is simply marked Refunded and its
    pending payments closed.

    Raises:
        PaymentError: the gateway rejected the refund (nothing is changed locally)
    """
    payment = await payments_service.latest_completed_payment(ticket_id)
    gateway_refund_id = None

    if payment and payment.gateway_intent_id:
        gateway = get_gateway(settings.payment_gateway)
        gateway_refund_id = await gateway.create_refund(payment.gateway_intent_id, payment.amount)
        if not gateway_refund_id:
            raise PaymentError("Refund was rejected by the payment gateway", {"payment_id": payment.id})

    refund_amount = Decimal("0")
    if payment:
        if await payments_service.process_refund(ticket_id):
            refund_amount = payment.amount
    else:
        await payments_service.fail_pending_for_ticket(ticket_id)

    refunded = await tickets_service.refund_ticket(ticket_id)

    return RefundResult(
        ticket_id=ticket_id,
        refunded=refunded,
        refund_amount=refund_amount,
        gateway_refund_id=gateway_refund_id,
    )
