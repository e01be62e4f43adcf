import logging
from typing import Optional, List
from decimal import Decimal
from app.repositories import get_repositories
from app.models.payment import Payment, PaymentStatus, PaymentMethod

logger = logging.getLogger(__name__)


async def list_payments() -> List[Payment]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.list_all()


async def get_payment(payment_id: int) -> Optional[Payment]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.get_by_id(payment_id)


async def list_by_customer(customer_id: str) -> List[Payment]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.list_by_customer(customer_id)


async def list_by_ticket(ticket_id: int) -> List[Payment]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.list_by_ticket(ticket_id)


async def get_by_intent_id(intent_id: str) -> Optional[Payment]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.get_by_intent_id(intent_id)


async def process_payment(
    ticket_id: int,
    customer_id: str,
    method: PaymentMethod,
    amount: Decimal
) -> Optional[Payment]:
    """
    Record a Pending payment for a ticket. The gateway intent id stays empty
    until the gateway reports it back. Returns None if the ticket is missing.
    """
    async with get_repositories() as repos:
        ticket = await repos.tickets.get_by_id(ticket_id)
        if not ticket:
            logger.warning(f"Payment not created: ticket {ticket_id} not found")
            return None

        payment = await repos.payments.create(ticket_id, customer_id, method, amount)

    logger.info(f"Payment {payment.id} ({payment.transaction_id}) pending for ticket {ticket_id}: {amount}")
    return payment


async def update_status(payment_id: int, status: PaymentStatus) -> bool:
    """Unconditional overwrite, for admin corrections"""
    async with get_repositories() as repos:
        updated = await repos.payments.update_status(payment_id, status)

    if updated:
        logger.info(f"Payment {payment_id} status set to {status.value}")
    return updated


async def attach_intent_id(payment_id: int, intent_id: str) -> bool:
    async with get_repositories() as repos:
        return await repos.payments.attach_intent_id(payment_id, intent_id)


async def complete_if_pending(payment_id: int, intent_id: Optional[str] = None) -> Optional[Payment]:
    async with get_repositories() as repos:
        return await repos.payments.transition(payment_id, PaymentStatus.PENDING, PaymentStatus.COMPLETED, intent_id)


async def fail_if_pending(payment_id: int) -> Optional[Payment]:
    async with get_repositories() as repos:
        return await repos.payments.transition(payment_id, PaymentStatus.PENDING, PaymentStatus.FAILED)


async def fail_pending_for_ticket(ticket_id: int) -> int:
    async with get_repositories() as repos:
        failed = await repos.payments.fail_pending_for_ticket(ticket_id)

    if failed:
        logger.info(f"Marked {failed} pending payment(s) failed for ticket {ticket_id}")
    return failed


async def latest_completed_payment(ticket_id: int) -> Optional[Payment]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.latest_completed_for_ticket(ticket_id)


async def process_refund(ticket_id: int) -> bool:
    """
    Book a refund for the ticket's latest completed charge: a new Completed
    payment with the negated amount, and the original marked Refunded.
    Both rows change together. False when there is nothing to refund.
    """
    async with get_repositories() as repos:
        original = await repos.payments.latest_completed_for_ticket(ticket_id)
        if not original:
            logger.info(f"No completed payment to refund for ticket {ticket_id}")
            return False

        refund = await repos.payments.create(
            ticket_id=original.ticket_id,
            customer_id=original.customer_id,
            method=original.payment_method,
            amount=-original.amount,
            status=PaymentStatus.COMPLETED,
            gateway_intent_id=original.gateway_intent_id
        )
        await repos.payments.update_status(original.id, PaymentStatus.REFUNDED)

    logger.info(f"Refund payment {refund.id} of {refund.amount} booked against payment {original.id}")
    return True


async def total_revenue() -> Decimal:
    """Sum of completed payments; refund rows net out"""
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.total_revenue()


async def revenue_by_organizer(organizer_id: str) -> Decimal:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.payments.revenue_by_organizer(organizer_id)


async def validate_payment(transaction_id: str) -> bool:
    async with get_repositories(use_transaction=False) as repos:
        payment = await repos.payments.get_by_transaction_id(transaction_id)
    return payment is not None and payment.status == PaymentStatus.COMPLETED
