"""
Repositorios en memoria con la misma interfaz que app.repositories.

Los servicios abren `get_repositories()`; los tests lo reemplazan por
`FakeStore.get_repositories`, que entrega estos repositorios sobre un estado
compartido en memoria. Las reglas condicionales del SQL (inventario, cambios
de estado guardados, soft delete) se reproducen aquí.
"""
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Optional, List, Dict, Any

from app.models.event import Event, EventCreate, EventSearch
from app.models.ticket import Ticket, TicketStatus, TicketWithEvent
from app.models.payment import Payment, PaymentStatus, PaymentMethod
from app.models.promotion import Promotion, PromotionCreate, PromotionUpdate
from app.models.user import User
from app.repositories.payment_repository import generate_transaction_id
from app.utils.dates import utcnow
from app.utils.qr_generator import generate_ticket_code
from tests.utils.factories import (
    UserFactory, SessionFactory, EventFactory, TicketFactory, PaymentFactory, PromotionFactory
)


class FakeStore:
    """Estado en memoria: una "tabla" (dict id -> modelo) por entidad."""

    def __init__(self):
        self.events: Dict[int, Event] = {}
        self.tickets: Dict[int, Ticket] = {}
        self.payments: Dict[int, Payment] = {}
        self.promotions: Dict[int, Promotion] = {}
        self.users: Dict[str, User] = {}
        self.sessions: Dict[str, dict] = {}
        self.webhook_events: Dict[str, str] = {}
        self._sequences: Dict[str, int] = {}

    def next_id(self, table: str) -> int:
        self._sequences[table] = self._sequences.get(table, 0) + 1
        return self._sequences[table]

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_user(self, **kwargs) -> User:
        user = User(**UserFactory.create(**kwargs))
        self.users[user.id] = user
        return user

    def add_session(self, user_id: str, **kwargs) -> str:
        session = SessionFactory.create(user_id, **kwargs)
        self.sessions[session["id"]] = session
        return session["id"]

    def add_event(self, **kwargs) -> Event:
        event = Event(**EventFactory.create(id=self.next_id("events"), **kwargs))
        self.events[event.id] = event
        return event

    def add_ticket(self, **kwargs) -> Ticket:
        ticket = Ticket(**TicketFactory.create(id=self.next_id("tickets"), **kwargs))
        self.tickets[ticket.id] = ticket
        return ticket

    def add_payment(self, **kwargs) -> Payment:
        payment = Payment(**PaymentFactory.create(id=self.next_id("payments"), **kwargs))
        self.payments[payment.id] = payment
        return payment

    def add_promotion(self, **kwargs) -> Promotion:
        promotion = Promotion(**PromotionFactory.create(id=self.next_id("promotions"), **kwargs))
        self.promotions[promotion.id] = promotion
        return promotion

    # ------------------------------------------------------------------
    # Replacement for app.repositories.get_repositories
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def get_repositories(self, use_transaction: bool = True):
        yield FakeRepositories(self)


class FakeRepositories:
    def __init__(self, store: FakeStore):
        self.conn = None
        self.events = FakeEventRepository(store)
        self.tickets = FakeTicketRepository(store)
        self.payments = FakePaymentRepository(store)
        self.promotions = FakePromotionRepository(store)
        self.users = FakeUserRepository(store)
        self.webhook_events = FakeWebhookEventRepository(store)


class FakeTable:
    table: str = ""

    def __init__(self, store: FakeStore):
        self.store = store

    @property
    def rows(self) -> Dict[Any, Any]:
        return getattr(self.store, self.table)

    def live(self) -> List[Any]:
        return [row for row in self.rows.values() if row.deleted_at is None]

    def _save(self, row):
        self.rows[row.id] = row
        return row

    def _update(self, row, **changes):
        return self._save(row.model_copy(update={**changes, "updated_at": utcnow()}))

    async def get_by_id(self, entity_id) -> Optional[Any]:
        row = self.rows.get(entity_id)
        if row is None or row.deleted_at is not None:
            return None
        return row

    async def list_all(self) -> List[Any]:
        return sorted(self.live(), key=lambda r: r.created_at, reverse=True)

    async def soft_delete(self, entity_id) -> bool:
        row = await self.get_by_id(entity_id)
        if not row:
            return False
        self._update(row, deleted_at=utcnow())
        return True


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


class FakeEventRepository(FakeTable):
    table = "events"

    async def list_active(self) -> List[Event]:
        return [e for e in await self.list_all() if e.is_active]

    async def list_by_organizer(self, organizer_id: str) -> List[Event]:
        return [e for e in await self.list_all() if e.organizer_id == organizer_id]

    async def search(self, filters: EventSearch) -> List[Event]:
        events = await self.list_active()
        if filters.category:
            events = [e for e in events if _contains(e.category, filters.category)]
        if filters.date:
            events = [e for e in events if e.date.date() == filters.date.date()]
        if filters.location:
            events = [e for e in events if _contains(e.location, filters.location)]
        if filters.search_term:
            events = [
                e for e in events
                if _contains(e.title, filters.search_term) or _contains(e.description, filters.search_term)
            ]
        return sorted(events, key=lambda e: e.date, reverse=True)

    async def list_upcoming(self, now) -> List[Event]:
        return sorted([e for e in await self.list_active() if e.date > now], key=lambda e: e.date)

    async def create(self, organizer_id: str, data: EventCreate) -> Event:
        now = utcnow()
        return self._save(Event(
            id=self.store.next_id("events"),
            available_tickets=data.capacity,
            is_active=True,
            organizer_id=organizer_id,
            created_at=now,
            updated_at=now,
            **data.model_dump()
        ))

    async def update(self, event_id: int, fields: Dict[str, Any]) -> Optional[Event]:
        event = await self.get_by_id(event_id)
        if not event or not fields:
            return event
        return self._update(event, **fields)

    async def resize(self, event_id: int, capacity: int) -> Optional[Event]:
        event = await self.get_by_id(event_id)
        if not event or event.tickets_sold > capacity:
            return None
        return self._update(
            event,
            capacity=capacity,
            available_tickets=event.available_tickets + (capacity - event.capacity)
        )

    async def decrement_available(self, event_id: int, count: int) -> bool:
        event = await self.get_by_id(event_id)
        if not event or not event.is_active or event.available_tickets < count:
            return False
        self._update(event, available_tickets=event.available_tickets - count)
        return True

    async def increment_available(self, event_id: int, count: int) -> bool:
        event = await self.get_by_id(event_id)
        if not event or event.available_tickets + count > event.capacity:
            return False
        self._update(event, available_tickets=event.available_tickets + count)
        return True


class FakeTicketRepository(FakeTable):
    table = "tickets"

    async def list_all(self) -> List[Ticket]:
        return sorted(self.live(), key=lambda t: t.purchase_date, reverse=True)

    async def list_by_customer(self, customer_id: str) -> List[TicketWithEvent]:
        result = []
        for ticket in await self.list_all():
            if ticket.customer_id != customer_id:
                continue
            event = self.store.events.get(ticket.event_id)
            charges = [
                p for p in self.store.payments.values()
                if p.ticket_id == ticket.id and p.deleted_at is None and p.amount >= 0
            ]
            latest = max(charges, key=lambda p: (p.created_at, p.id)) if charges else None
            result.append(TicketWithEvent(
                **ticket.model_dump(),
                event_title=event.title if event else None,
                event_date=event.date if event else None,
                event_location=event.location if event else None,
                payment_status=latest.status.value if latest else None
            ))
        return result

    async def list_by_event(self, event_id: int) -> List[Ticket]:
        return [t for t in await self.list_all() if t.event_id == event_id]

    async def get_by_qr_code(self, qr_code: str) -> Optional[Ticket]:
        for ticket in self.live():
            if ticket.qr_code == qr_code:
                return ticket
        return None

    async def create(
        self,
        event_id: int,
        customer_id: str,
        price: Decimal,
        seat_number: Optional[str] = None
    ) -> Ticket:
        now = utcnow()
        return self._save(Ticket(
            id=self.store.next_id("tickets"),
            qr_code=generate_ticket_code(),
            price=price,
            seat_number=seat_number,
            status=TicketStatus.ACTIVE,
            purchase_date=now,
            event_id=event_id,
            customer_id=customer_id,
            created_at=now,
            updated_at=now
        ))

    async def update_status(self, ticket_id: int, status: TicketStatus) -> Optional[TicketStatus]:
        ticket = await self.get_by_id(ticket_id)
        if not ticket:
            return None
        self._update(ticket, status=status)
        return ticket.status

    async def transition(
        self,
        ticket_id: int,
        from_status: TicketStatus,
        to_status: TicketStatus
    ) -> Optional[Ticket]:
        ticket = await self.get_by_id(ticket_id)
        if not ticket or ticket.status != from_status:
            return None
        return self._update(ticket, status=to_status)


class FakePaymentRepository(FakeTable):
    table = "payments"

    async def list_all(self) -> List[Payment]:
        return sorted(self.live(), key=lambda p: (p.payment_date, p.id), reverse=True)

    async def list_by_customer(self, customer_id: str) -> List[Payment]:
        return [p for p in await self.list_all() if p.customer_id == customer_id]

    async def list_by_ticket(self, ticket_id: int) -> List[Payment]:
        return [p for p in await self.list_all() if p.ticket_id == ticket_id]

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        for payment in self.live():
            if payment.transaction_id == transaction_id:
                return payment
        return None

    async def list_by_intent_id(self, intent_id: str) -> List[Payment]:
        return sorted(
            [p for p in self.live() if p.gateway_intent_id == intent_id and p.amount >= 0],
            key=lambda p: p.id
        )

    async def get_by_intent_id(self, intent_id: str) -> Optional[Payment]:
        payments = await self.list_by_intent_id(intent_id)
        return payments[-1] if payments else None

    async def create(
        self,
        ticket_id: int,
        customer_id: str,
        method: PaymentMethod,
        amount: Decimal,
        status: PaymentStatus = PaymentStatus.PENDING,
        gateway_intent_id: Optional[str] = None
    ) -> Payment:
        now = utcnow()
        return self._save(Payment(
            id=self.store.next_id("payments"),
            amount=amount,
            payment_date=now,
            status=status,
            transaction_id=generate_transaction_id(),
            payment_method=method,
            ticket_id=ticket_id,
            customer_id=customer_id,
            gateway_intent_id=gateway_intent_id,
            created_at=now,
            updated_at=now
        ))

    async def update_status(self, payment_id: int, status: PaymentStatus) -> bool:
        payment = await self.get_by_id(payment_id)
        if not payment:
            return False
        self._update(payment, status=status)
        return True

    async def attach_intent_id(self, payment_id: int, intent_id: str) -> bool:
        payment = await self.get_by_id(payment_id)
        if not payment:
            return False
        self._update(payment, gateway_intent_id=intent_id)
        return True

    async def transition(
        self,
        payment_id: int,
        from_status: PaymentStatus,
        to_status: PaymentStatus,
        intent_id: Optional[str] = None
    ) -> Optional[Payment]:
        payment = await self.get_by_id(payment_id)
        if not payment or payment.status != from_status:
            return None
        return self._update(payment, status=to_status, gateway_intent_id=intent_id or payment.gateway_intent_id)

    async def fail_pending_for_ticket(self, ticket_id: int) -> int:
        pending = [p for p in self.live() if p.ticket_id == ticket_id and p.status == PaymentStatus.PENDING]
        for payment in pending:
            self._update(payment, status=PaymentStatus.FAILED)
        return len(pending)

    async def latest_completed_for_ticket(self, ticket_id: int) -> Optional[Payment]:
        charges = [
            p for p in self.live()
            if p.ticket_id == ticket_id and p.status == PaymentStatus.COMPLETED and p.amount > 0
        ]
        return max(charges, key=lambda p: (p.payment_date, p.id)) if charges else None

    async def total_revenue(self) -> Decimal:
        return sum((p.amount for p in self.live() if p.status == PaymentStatus.COMPLETED), Decimal("0"))

    async def revenue_by_organizer(self, organizer_id: str) -> Decimal:
        total = Decimal("0")
        for payment in self.live():
            if payment.status != PaymentStatus.COMPLETED:
                continue
            ticket = self.store.tickets.get(payment.ticket_id)
            event = self.store.events.get(ticket.event_id) if ticket else None
            if event and event.organizer_id == organizer_id:
                total += payment.amount
        return total


class FakePromotionRepository(FakeTable):
    table = "promotions"

    async def list_by_event(self, event_id: int) -> List[Promotion]:
        return sorted(
            [p for p in self.live() if p.event_id == event_id],
            key=lambda p: p.start_date,
            reverse=True
        )

    async def get_by_code(self, code: str) -> Optional[Promotion]:
        for promotion in self.live():
            if promotion.code == code:
                return promotion
        return None

    async def code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        return any(p.code == code and p.id != exclude_id for p in self.live())

    async def list_active(self, now) -> List[Promotion]:
        return sorted(
            [p for p in self.live() if p.is_active and p.start_date <= now <= p.end_date],
            key=lambda p: p.end_date
        )

    async def find_valid(self, code: str, event_id: int, now) -> Optional[Promotion]:
        promotion = await self.get_by_code(code)
        if promotion and promotion.is_valid_at(now, event_id):
            return promotion
        return None

    def _organizer_of(self, promotion: Promotion) -> Optional[str]:
        event = self.store.events.get(promotion.event_id)
        return event.organizer_id if event else None

    async def list_by_organizer(self, organizer_id: str) -> List[Promotion]:
        return [
            p for p in await self.list_all()
            if self._organizer_of(p) == organizer_id
            and self.store.events[p.event_id].deleted_at is None
        ]

    async def is_owned_by_organizer(self, promotion_id: int, organizer_id: str) -> bool:
        promotion = await self.get_by_id(promotion_id)
        return bool(promotion) and self._organizer_of(promotion) == organizer_id

    async def create(self, data: PromotionCreate) -> Promotion:
        now = utcnow()
        return self._save(Promotion(
            id=self.store.next_id("promotions"),
            created_at=now,
            updated_at=now,
            **data.model_dump()
        ))

    async def update(self, promotion_id: int, data: PromotionUpdate) -> Optional[Promotion]:
        promotion = await self.get_by_id(promotion_id)
        if not promotion:
            return None
        return self._update(promotion, **data.model_dump())


class FakeUserRepository(FakeTable):
    table = "users"

    async def get_session_user(self, session_token: str) -> Optional[dict]:
        session = self.store.sessions.get(session_token)
        if not session or not session["is_active"] or session["expires_at"] <= utcnow():
            return None

        user = await self.get_by_id(session["user_id"])
        if not user or not user.is_active_at(utcnow()):
            return None

        return {
            "user_id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role.value,
            "lockout_end": user.lockout_end,
            "session_id": session["id"],
            "expires_at": session["expires_at"]
        }


class FakeWebhookEventRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def record(self, event_id: str, event_type: str) -> bool:
        if event_id in self.store.webhook_events:
            return False
        self.store.webhook_events[event_id] = event_type
        return True
