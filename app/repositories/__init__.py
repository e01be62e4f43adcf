# Repository layer: one class per table, bound to one connection
from contextlib import asynccontextmanager
from app.database import get_db_connection
from app.repositories.event_repository import EventRepository
from app.repositories.ticket_repository import TicketRepository
from app.repositories.payment_repository import PaymentRepository
from app.repositories.promotion_repository import PromotionRepository
from app.repositories.user_repository import UserRepository
from app.repositories.webhook_event_repository import WebhookEventRepository


class Repositories:
    """All repositories sharing one connection, and so one transaction."""

    def __init__(self, conn):
        self.conn = conn
        self.events = EventRepository(conn)
        self.tickets = TicketRepository(conn)
        self.payments = PaymentRepository(conn)
        self.promotions = PromotionRepository(conn)
        self.users = UserRepository(conn)
        self.webhook_events = WebhookEventRepository(conn)


@asynccontextmanager
async def get_repositories(use_transaction: bool = True):
    """
    Usage:
    async with get_repositories() as repos:
        event = await repos.events.get_by_id(event_id)
    """
    async with get_db_connection(use_transaction=use_transaction) as conn:
        yield Repositories(conn)
