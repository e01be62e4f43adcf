"""
Tests del SQL de los repositorios contra MockDBConnection.
"""
import pytest
from datetime import datetime
from decimal import Decimal

from app.models.event import EventCreate, EventSearch
from app.models.payment import PaymentStatus, PaymentMethod
from app.models.ticket import TicketStatus
from app.repositories import Repositories
from app.repositories.base import affected_rows, LIVE
from app.repositories.event_repository import EventRepository
from app.repositories.payment_repository import PaymentRepository
from app.repositories.promotion_repository import PromotionRepository
from app.repositories.ticket_repository import TicketRepository
from app.repositories.webhook_event_repository import WebhookEventRepository
from tests.utils.factories import EventFactory, PaymentFactory
from tests.utils.mocks import MockDBConnection


class TestAffectedRows:
    def test_command_tags(self):
        assert affected_rows("UPDATE 1") == 1
        assert affected_rows("UPDATE 0") == 0
        assert affected_rows("INSERT 0 1") == 1
        assert affected_rows(None) == 0
        assert affected_rows("") == 0


class TestSoftDelete:
    """Las lecturas filtran deleted_at y el borrado solo marca la fila."""

    @pytest.mark.asyncio
    async def test_get_by_id_filters_deleted(self):
        conn = MockDBConnection()
        await EventRepository(conn).get_by_id(1)
        assert conn.was_called_with("fetchrow", LIVE)

    @pytest.mark.asyncio
    async def test_soft_delete_never_deletes(self):
        conn = MockDBConnection()

        assert await TicketRepository(conn).soft_delete(5) is True
        assert conn.was_called_with("execute", "SET deleted_at = NOW()")
        assert not any("DELETE" in call[1] for call in conn.get_call_history())

    @pytest.mark.asyncio
    async def test_soft_delete_missing_row(self):
        conn = MockDBConnection()
        conn.set_execute_return("deleted_at", "UPDATE 0")
        assert await PaymentRepository(conn).soft_delete(5) is False


class TestEventRepository:
    """Tests para las sentencias de inventario."""

    @pytest.mark.asyncio
    async def test_decrement_is_conditional(self):
        conn = MockDBConnection()
        conn.set_execute_return("available_tickets - $2", "UPDATE 0")

        assert await EventRepository(conn).decrement_available(1, 3) is False
        assert conn.was_called_with("execute", "available_tickets >= $2")
        assert conn.last_args("execute") == (1, 3)

    @pytest.mark.asyncio
    async def test_increment_bounded_by_capacity(self):
        conn = MockDBConnection()

        assert await EventRepository(conn).increment_available(1, 1) is True
        assert conn.was_called_with("execute", "available_tickets + $2 <= capacity")

    @pytest.mark.asyncio
    async def test_create_sets_available_to_capacity(self):
        conn = MockDBConnection()
        row = EventFactory.create(id=7, capacity=50)
        conn.set_fetchrow_return("INSERT INTO events", row)

        data = EventCreate(
            title=row["title"], date=row["date"], location=row["location"],
            category=row["category"], capacity=50, base_price=row["base_price"]
        )
        event = await EventRepository(conn).create("organizer-1", data)

        assert event.id == 7
        assert conn.was_called_with("fetchrow", "$6, $6")

    @pytest.mark.asyncio
    async def test_search_builds_parameters(self):
        conn = MockDBConnection()

        await EventRepository(conn).search(EventSearch(category="rock", search_term="night"))

        query = conn.get_call_history()[-1][1]
        assert "category ILIKE" in query
        assert "title ILIKE '%' || $2" in query
        assert "ORDER BY date DESC" in query
        assert conn.last_args("fetch") == ("rock", "night")

    @pytest.mark.asyncio
    async def test_update_without_fields_reads(self):
        conn = MockDBConnection()
        await EventRepository(conn).update(1, {})
        assert not conn.was_called_with("fetchrow", "UPDATE events")

    @pytest.mark.asyncio
    async def test_resize_guards_sold_tickets(self):
        conn = MockDBConnection()

        assert await EventRepository(conn).resize(1, 5) is None
        assert conn.was_called_with("fetchrow", "capacity - available_tickets <= $2")


class TestTicketRepository:
    @pytest.mark.asyncio
    async def test_update_status_returns_previous(self):
        conn = MockDBConnection()
        conn.set_fetchrow_return("previous_status", {"previous_status": "active"})

        previous = await TicketRepository(conn).update_status(3, TicketStatus.REFUNDED)

        assert previous == TicketStatus.ACTIVE
        assert conn.last_args("fetchrow") == (3, "refunded")

    @pytest.mark.asyncio
    async def test_transition_is_guarded(self):
        conn = MockDBConnection()

        assert await TicketRepository(conn).transition(3, TicketStatus.ACTIVE, TicketStatus.CANCELLED) is None
        assert conn.was_called_with("fetchrow", "status = $2")
        assert conn.last_args("fetchrow") == (3, "active", "cancelled")


class TestPaymentRepository:
    @pytest.mark.asyncio
    async def test_create_generates_transaction_id(self):
        conn = MockDBConnection()
        conn.set_fetchrow_return("INSERT INTO payments", PaymentFactory.create(id=1))

        await PaymentRepository(conn).create(1, "customer-1", PaymentMethod.STRIPE, Decimal("10.00"))

        args = conn.last_args("fetchrow")
        assert args[1] == "pending"
        assert args[2].startswith("TXN-")

    @pytest.mark.asyncio
    async def test_transition_keeps_intent_when_none(self):
        conn = MockDBConnection()

        await PaymentRepository(conn).transition(1, PaymentStatus.PENDING, PaymentStatus.COMPLETED)

        assert conn.was_called_with("fetchrow", "COALESCE($4, gateway_intent_id)")
        assert conn.last_args("fetchrow") == (1, "pending", "completed", None)

    @pytest.mark.asyncio
    async def test_revenue_is_decimal(self):
        conn = MockDBConnection()
        conn.set_fetchval_return("SUM(amount)", Decimal("150.50"))

        assert await PaymentRepository(conn).total_revenue() == Decimal("150.50")

    @pytest.mark.asyncio
    async def test_revenue_empty(self):
        conn = MockDBConnection()
        assert await PaymentRepository(conn).revenue_by_organizer("organizer-1") == Decimal("0")

    @pytest.mark.asyncio
    async def test_latest_completed_ignores_refund_rows(self):
        conn = MockDBConnection()
        await PaymentRepository(conn).latest_completed_for_ticket(1)
        assert conn.was_called_with("fetchrow", "amount > 0")

    @pytest.mark.asyncio
    async def test_fail_pending_counts_rows(self):
        conn = MockDBConnection()
        conn.set_execute_return("status = 'pending'", "UPDATE 2")
        assert await PaymentRepository(conn).fail_pending_for_ticket(1) == 2


class TestPromotionRepository:
    @pytest.mark.asyncio
    async def test_find_valid_checks_window(self):
        conn = MockDBConnection()
        now = datetime(2026, 1, 1)

        await PromotionRepository(conn).find_valid("SAVE20", 1, now)

        assert conn.was_called_with("fetchrow", "start_date <= $3 AND end_date >= $3")
        assert conn.last_args("fetchrow") == ("SAVE20", 1, now)

    @pytest.mark.asyncio
    async def test_code_taken(self):
        conn = MockDBConnection()
        conn.set_fetchval_return("SELECT EXISTS", True)
        assert await PromotionRepository(conn).code_taken("SAVE20") is True


class TestWebhookEventRepository:
    @pytest.mark.asyncio
    async def test_record_new_event(self):
        conn = MockDBConnection()
        conn.set_execute_return("processed_webhook_events", "INSERT 0 1")
        assert await WebhookEventRepository(conn).record("evt_1", "checkout.session.completed") is True

    @pytest.mark.asyncio
    async def test_record_duplicate(self):
        conn = MockDBConnection()
        conn.set_execute_return("processed_webhook_events", "INSERT 0 0")
        assert await WebhookEventRepository(conn).record("evt_1", "checkout.session.completed") is False


class TestRepositories:
    def test_share_one_connection(self):
        conn = MockDBConnection()
        repos = Repositories(conn)
        assert repos.events.conn is conn
        assert repos.payments.conn is conn
        assert repos.webhook_events.conn is conn
