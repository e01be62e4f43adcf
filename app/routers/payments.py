"""
Payments Router

Payment records are created by the ticket checkout; this router exposes
them, the revenue reports and the Stripe webhook that settles them.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from typing import List, Optional
from app.core.dependencies import (
    get_authenticated_user, AuthenticatedUser, require_admin, require_organizer
)
from app.core.exceptions import AuthorizationError, ValidationError
from app.models.payment import (
    Payment, PaymentStatusUpdate, RevenueSummary, TransactionValidation, WebhookAck
)
from app.services import payments_service, tickets_service, webhook_service, email_service

router = APIRouter()


# ============================================================================
# WEBHOOKS (signature verified, no session)
# ============================================================================

@router.post("/webhooks/stripe", response_model=WebhookAck)
async def stripe_webhook(request: Request, background_tasks: BackgroundTasks):
    """
    Receive Stripe webhook events.

    The raw body is verified against the `Stripe-Signature` header with
    STRIPE_WEBHOOK_SECRET before anything is parsed.

    **Handled events:**
    - `checkout.session.completed`: pending payments in the session -> completed
    - `payment_intent.succeeded`: pending payments of the intent -> completed
    - `payment_intent.payment_failed`: pending payments of the intent -> failed
    - `charge.dispute.created`: payments of the disputed intent -> failed

    Redelivered events are acknowledged without being applied again.
    """
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")

    outcome = await webhook_service.handle_webhook(raw_body, signature)

    for confirmation in outcome.confirmations:
        background_tasks.add_task(email_service.send_ticket_confirmation, confirmation)

    return WebhookAck(
        event_id=outcome.event_id,
        event_type=outcome.event_type,
        duplicate=outcome.duplicate,
        payments_updated=len(outcome.payment_ids)
    )


# ============================================================================
# AUTHENTICATED ENDPOINTS
# ============================================================================

@router.get("", response_model=List[Payment])
async def list_my_payments(user: AuthenticatedUser = Depends(get_authenticated_user)):
    """Payments (and refund rows) of the current user."""
    return await payments_service.list_by_customer(user.user_id)


@router.get("/all", response_model=List[Payment])
async def list_all_payments(user: AuthenticatedUser = Depends(require_admin)):
    return await payments_service.list_payments()


@router.get("/revenue/total", response_model=RevenueSummary)
async def get_total_revenue(user: AuthenticatedUser = Depends(require_admin)):
    """
    Sum of completed payments. Refunds are stored as negative completed
    rows, so refunded sales net out.
    """
    return RevenueSummary(total_revenue=await payments_service.total_revenue())


@router.get("/revenue/organizer", response_model=RevenueSummary)
async def get_organizer_revenue(
    organizer_id: Optional[str] = Query(None, description="Organizer to report on (admin only)"),
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Completed revenue across the events of one organizer.
    Organizers always get their own figure; admins must pass organizer_id.
    """
    if user.is_admin:
        if not organizer_id:
            raise ValidationError("organizer_id is required")
    else:
        organizer_id = user.user_id

    return RevenueSummary(
        total_revenue=await payments_service.revenue_by_organizer(organizer_id),
        organizer_id=organizer_id
    )


@router.get("/validate/{transaction_id}", response_model=TransactionValidation)
async def validate_transaction(
    transaction_id: str,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    """A transaction is valid when it exists and is completed."""
    return TransactionValidation(
        transaction_id=transaction_id,
        is_valid=await payments_service.validate_payment(transaction_id)
    )


@router.get("/ticket/{ticket_id}", response_model=List[Payment])
async def list_ticket_payments(
    ticket_id: int,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    ticket = await tickets_service.get_ticket(ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    if ticket.customer_id != user.user_id and not user.is_admin:
        raise AuthorizationError("You do not have access to this ticket")
    return await payments_service.list_by_ticket(ticket_id)


@router.get("/{payment_id}", response_model=Payment)
async def get_payment(
    payment_id: int,
    user: AuthenticatedUser = Depends(get_authenticated_user)
):
    """Get payment details (owner or admin)."""
    payment = await payments_service.get_payment(payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    if payment.customer_id != user.user_id and not user.is_admin:
        raise AuthorizationError("You do not have access to this payment")
    return payment


@router.patch("/{payment_id}/status", response_model=Payment)
async def update_payment_status(
    payment_id: int,
    data: PaymentStatusUpdate,
    user: AuthenticatedUser = Depends(require_admin)
):
    """Set a payment status by hand (ADMIN), e.g. to settle a dispute."""
    if not await payments_service.update_status(payment_id, data.status):
        raise HTTPException(status_code=404, detail="Payment not found")
    return await payments_service.get_payment(payment_id)
