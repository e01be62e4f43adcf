import logging
from typing import Optional
from datetime import datetime
from decimal import Decimal
import boto3
from botocore.exceptions import ClientError, BotoCoreError
from app.config import settings
from app.models.webhook import TicketConfirmation
from app.utils.qr_generator import generate_qr_base64, generate_data_url

logger = logging.getLogger(__name__)


def get_ses_client():
    """Get AWS SES client"""
    return boto3.client(
        'ses',
        region_name=settings.aws_region,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key
    )


async def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """Send email via AWS SES. Failures are logged and reported as False, never raised."""
    if not settings.aws_ses_from_email:
        logger.warning(f"AWS_SES_FROM_EMAIL not configured, skipping email to {to_email}")
        return False

    try:
        client = get_ses_client()

        message = {
            'Subject': {'Data': subject, 'Charset': 'UTF-8'},
            'Body': {
                'Html': {'Data': html_body, 'Charset': 'UTF-8'}
            }
        }

        if text_body:
            message['Body']['Text'] = {'Data': text_body, 'Charset': 'UTF-8'}

        response = client.send_email(
            Source=f"{settings.aws_ses_from_name} <{settings.aws_ses_from_email}>",
            Destination={'ToAddresses': [to_email]},
            Message=message
        )

        logger.info(f"Email sent to {to_email}: {response['MessageId']}")
        return True

    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _format_event_date(event_date: Optional[datetime]) -> str:
    return event_date.strftime("%B %d, %Y at %H:%M") if event_date else "To be announced"


async def send_purchase_initiated(
    to_email: str,
    customer_name: str,
    event_title: str,
    event_date: Optional[datetime],
    ticket_count: int,
    total_amount: Decimal,
    checkout_url: Optional[str] = None
) -> bool:
    """Tell the customer their tickets are reserved and payment is pending."""
    event_date_str = _format_event_date(event_date)
    pay_line = f"Complete your payment here: {checkout_url}" if checkout_url else ""

    text_body = f"""Hi {customer_name},

We have reserved {ticket_count} ticket(s) for {event_title} ({event_date_str}).
Total: ${total_amount:,.2f}

Your payment is being processed. You will receive a confirmation email with
your QR code for each ticket as soon as the payment goes through.
{pay_line}

My tickets: {settings.frontend_url}/tickets
"""

    html_body = f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h2>Purchase received</h2>
        <p>Hi {customer_name},</p>
        <p>We have reserved <strong>{ticket_count}</strong> ticket(s) for
           <strong>{event_title}</strong> ({event_date_str}).</p>
        <p><strong>Total:</strong> ${total_amount:,.2f}</p>
        <p>Your payment is being processed. A confirmation with your QR code
           will follow for each ticket once it is paid.</p>
        {f'<p><a href="{checkout_url}">Complete payment</a></p>' if checkout_url else ''}
    </body>
    </html>
    """

    return await send_email(
        to_email=to_email,
        subject=f"Purchase received - {event_title}",
        html_body=html_body,
        text_body=text_body
    )


async def send_ticket_confirmation(confirmation: TicketConfirmation) -> bool:
    """Ticket confirmation with the QR code as text and as an inline image."""
    event_date_str = _format_event_date(confirmation.event_date)
    qr_data_url = generate_data_url(generate_qr_base64(confirmation.qr_code, size=6))
    seat = confirmation.seat_number or "General admission"

    text_body = f"""Hi {confirmation.customer_name},

Your payment went through. Here is your ticket.

TICKET
--------------------
Event: {confirmation.event_title}
Date: {event_date_str}
Location: {confirmation.event_location}
Seat: {seat}
Price: ${confirmation.price:,.2f}
QR code: {confirmation.qr_code}

Show this QR code at the entrance.
"""

    html_body = f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h2>Your ticket for {confirmation.event_title}</h2>
        <p>Hi {confirmation.customer_name}, your payment went through.</p>
        <p><strong>Date:</strong> {event_date_str}<br>
           <strong>Location:</strong> {confirmation.event_location}<br>
           <strong>Seat:</strong> {seat}<br>
           <strong>Price:</strong> ${confirmation.price:,.2f}</p>
        <p><img src="{qr_data_url}" alt="Ticket QR code" width="240" height="240"></p>
        <p style="font-family: monospace;">{confirmation.qr_code}</p>
        <p>Show this QR code at the entrance.</p>
    </body>
    </html>
    """

    sent = await send_email(
        to_email=confirmation.customer_email,
        subject=f"Your ticket - {confirmation.event_title}",
        html_body=html_body,
        text_body=text_body
    )
    if sent:
        logger.info(f"Ticket confirmation sent for ticket {confirmation.ticket_id} (payment {confirmation.payment_id})")
    return sent
