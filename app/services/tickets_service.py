import logging
from typing import Optional, List
from app.repositories import get_repositories
from app.models.ticket import Ticket, TicketStatus, TicketWithEvent
from app.services.events_service import price_for_event
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


async def list_tickets() -> List[Ticket]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.tickets.list_all()


async def get_ticket(ticket_id: int) -> Optional[Ticket]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.tickets.get_by_id(ticket_id)


async def list_by_customer(customer_id: str) -> List[TicketWithEvent]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.tickets.list_by_customer(customer_id)


async def list_by_event(event_id: int) -> List[Ticket]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.tickets.list_by_event(event_id)


async def get_by_qr_code(qr_code: str) -> Optional[Ticket]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.tickets.get_by_qr_code(qr_code)


async def purchase_ticket(event_id: int, customer_id: str, promotion_code: Optional[str] = None) -> Optional[Ticket]:
    """
    Issue one ticket.

    The seat decrement and the ticket insert run in one transaction, and the
    decrement is conditional on available_tickets >= 1, so an event can never
    issue more tickets than its capacity. Returns None when the event is
    missing, inactive or sold out.
    """
    async with get_repositories() as repos:
        event = await repos.events.get_by_id(event_id)
        if not event or not event.is_active:
            logger.info(f"Purchase rejected: event {event_id} missing or inactive")
            return None

        if event.available_tickets < 1:
            logger.info(f"Purchase rejected: event {event_id} sold out")
            return None

        price = await price_for_event(repos, event, promotion_code)

        if not await repos.events.decrement_available(event_id, 1):
            logger.info(f"Purchase rejected: event {event_id} sold out before the seat was taken")
            return None

        ticket = await repos.tickets.create(event_id, customer_id, price)

    logger.info(f"Ticket {ticket.id} issued for event {event_id} to {customer_id} at {price}")
    return ticket


async def update_status(ticket_id: int, status: TicketStatus) -> bool:
    async with get_repositories() as repos:
        previous = await repos.tickets.update_status(ticket_id, status)
    return previous is not None


async def cancel_ticket(ticket_id: int) -> bool:
    """Active -> Cancelled and give the seat back. Any other starting status fails."""
    async with get_repositories() as repos:
        ticket = await repos.tickets.transition(ticket_id, TicketStatus.ACTIVE, TicketStatus.CANCELLED)
        if not ticket:
            return False
        await repos.events.increment_available(ticket.event_id, 1)

    logger.info(f"Ticket {ticket_id} cancelled, seat released on event {ticket.event_id}")
    return True


async def refund_ticket(ticket_id: int) -> bool:
    """
    Mark the ticket Refunded whatever its status. The seat only goes back to
    the event when the ticket was still Active; a cancelled or already
    refunded ticket has no seat left to return.
    """
    async with get_repositories() as repos:
        ticket = await repos.tickets.get_by_id(ticket_id)
        if not ticket:
            return False

        previous = await repos.tickets.update_status(ticket_id, TicketStatus.REFUNDED)
        if previous is None:
            return False

        if previous == TicketStatus.ACTIVE:
            await repos.events.increment_available(ticket.event_id, 1)

    logger.info(f"Ticket {ticket_id} refunded (was {previous.value})")
    return True


async def validate_ticket(qr_code: str) -> bool:
    """Gate check: ticket exists, is Active, and its event has not happened yet. Read-only."""
    async with get_repositories(use_transaction=False) as repos:
        ticket = await repos.tickets.get_by_qr_code(qr_code)
        if not ticket or ticket.status != TicketStatus.ACTIVE:
            return False

        event = await repos.events.get_by_id(ticket.event_id)

    return event is not None and event.date > utcnow()


async def check_in_ticket(qr_code: str) -> bool:
    """Validate at the gate and mark the ticket Used so it cannot be scanned twice."""
    async with get_repositories() as repos:
        ticket = await repos.tickets.get_by_qr_code(qr_code)
        if not ticket or ticket.status != TicketStatus.ACTIVE:
            return False

        event = await repos.events.get_by_id(ticket.event_id)
        if not event or event.date <= utcnow():
            return False

        used = await repos.tickets.transition(ticket.id, TicketStatus.ACTIVE, TicketStatus.USED)

    if used:
        logger.info(f"Ticket {ticket.id} checked in for event {ticket.event_id}")
    return used is not None


async def get_qr_code(ticket_id: int) -> Optional[str]:
    ticket = await get_ticket(ticket_id)
    return ticket.qr_code if ticket else None
