from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from typing import List
from app.core.dependencies import (
    get_authenticated_user, AuthenticatedUser, require_customer, require_organizer
)
from app.core.exceptions import AuthorizationError, TicketError
from app.models.ticket import (
    Ticket, TicketWithEvent, TicketQRCode, TicketValidationRequest,
    TicketValidationResponse, PurchaseRequest, CheckoutResult, PurchaseOutcome
)
from app.models.payment import RefundResult
from app.services import checkout_service, events_service, tickets_service, email_service
from app.utils.qr_generator import generate_qr_base64, generate_data_url

router = APIRouter()


async def _get_owned_ticket(ticket_id: int, user: AuthenticatedUser) -> Ticket:
    ticket = await tickets_service.get_ticket(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if ticket.customer_id != user.user_id and not user.is_admin:
        raise AuthorizationError("You do not have access to this ticket")
    return ticket


@router.post("/purchase", response_model=CheckoutResult, status_code=201)
async def purchase_tickets(
    data: PurchaseRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(require_customer)
):
    """
    Buy one or more tickets for an event.

    Tickets are issued one by one; if the event sells out part way the
    response carries `outcome: "partial"` with the tickets that were issued.
    When nothing could be issued the request fails with 400.

    **Returns:**
    - `tickets`: issued tickets (status active)
    - `payment_ids`: pending payments, one per ticket
    - `checkout_url`: hosted payment page (absent for free tickets)
    """
    result = await checkout_service.start_checkout(
        data.event_id,
        user.user_id,
        data.quantity,
        promotion_code=data.promotion_code,
        success_url=data.success_url,
        cancel_url=data.cancel_url
    )

    if result.outcome == PurchaseOutcome.NONE:
        raise TicketError("No tickets available for this event", {"event_id": data.event_id})

    event = await events_service.get_event(data.event_id)
    background_tasks.add_task(
        email_service.send_purchase_initiated,
        user.email,
        user.name,
        event.title if event else "your event",
        event.date if event else None,
        result.issued,
        result.total_amount,
        result.checkout_url
    )

    return result


@router.get("", response_model=List[TicketWithEvent])
async def list_my_tickets(user: AuthenticatedUser = Depends(get_authenticated_user)):
    """Tickets bought by the current user, with event details and payment status."""
    return await tickets_service.list_by_customer(user.user_id)


@router.post("/validate", response_model=TicketValidationResponse)
async def validate_ticket(data: TicketValidationRequest):
    """
    Check a QR code without consuming it (PUBLIC).
    Valid means: ticket is active and its event has not started yet.
    """
    is_valid = await tickets_service.validate_ticket(data.qr_code)
    return TicketValidationResponse(qr_code=data.qr_code, is_valid=is_valid)


@router.post("/check-in", response_model=TicketValidationResponse)
async def check_in_ticket(
    data: TicketValidationRequest,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Scan a ticket at the gate. A valid ticket becomes `used` and cannot be
    checked in again.
    """
    checked_in = await tickets_service.check_in_ticket(data.qr_code)
    return TicketValidationResponse(qr_code=data.qr_code, is_valid=checked_in, checked_in=checked_in)


@router.get("/event/{event_id}", response_model=List[Ticket])
async def list_event_tickets(
    event_id: int,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """All tickets issued for an event (event owner or admin)."""
    event = await events_service.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if not user.is_admin and event.organizer_id != user.user_id:
        raise AuthorizationError("You can only view tickets for your own events")
    return await tickets_service.list_by_event(event_id)


@router.get("/{ticket_id}", response_model=Ticket)
async def get_ticket(
    ticket_id: int,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    return await _get_owned_ticket(ticket_id, user)


@router.post("/{ticket_id}/cancel", response_model=Ticket)
async def cancel_ticket(
    ticket_id: int,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    """
    Cancel an active ticket. The seat goes back on sale and any payment
    still pending for the ticket is marked failed.
    """
    await _get_owned_ticket(ticket_id, user)

    if not await checkout_service.cancel_ticket(ticket_id):
        raise TicketError("Only active tickets can be cancelled", {"ticket_id": ticket_id})

    return await tickets_service.get_ticket(ticket_id)


@router.post("/{ticket_id}/refund", response_model=RefundResult)
async def refund_ticket(
    ticket_id: int,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    """
    Refund a ticket. A settled charge is refunded at the payment gateway
    first and recorded as a negative payment.
    """
    await _get_owned_ticket(ticket_id, user)
    return await checkout_service.refund_ticket(ticket_id)


@router.get("/{ticket_id}/qr", response_model=TicketQRCode)
async def get_ticket_qr(
    ticket_id: int,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    """
    Get the QR code for a ticket.
    Returns base64 encoded PNG image.
    """
    ticket = await _get_owned_ticket(ticket_id, user)
    qr_base64 = generate_qr_base64(ticket.qr_code)

    return TicketQRCode(
        ticket_id=ticket.id,
        qr_code=ticket.qr_code,
        qr_image_base64=qr_base64,
        qr_data_url=generate_data_url(qr_base64)
    )
