import uuid
from typing import Optional, List
from decimal import Decimal
from app.models.payment import Payment, PaymentStatus, PaymentMethod
from app.repositories.base import BaseRepository, LIVE, affected_rows
from app.utils.dates import utcnow


def generate_transaction_id() -> str:
    """TXN-<yyyyMMddHHmmss>-<8 hex chars>"""
    return f"TXN-{utcnow():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:8].upper()}"


class PaymentRepository(BaseRepository):
    table = "payments"
    model = Payment
    default_order = "payment_date DESC"

    async def list_by_customer(self, customer_id: str) -> List[Payment]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM payments
            WHERE customer_id = $1 AND {LIVE}
            ORDER BY payment_date DESC
        """, customer_id)
        return self._to_models(rows)

    async def list_by_ticket(self, ticket_id: int) -> List[Payment]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM payments
            WHERE ticket_id = $1 AND {LIVE}
            ORDER BY created_at DESC, id DESC
        """, ticket_id)
        return self._to_models(rows)

    async def get_by_transaction_id(self, transaction_id: str) -> Optional[Payment]:
        row = await self.conn.fetchrow(
            f"SELECT * FROM payments WHERE transaction_id = $1 AND {LIVE}",
            transaction_id
        )
        return self._to_model(row)

    async def get_by_intent_id(self, intent_id: str) -> Optional[Payment]:
        row = await self.conn.fetchrow(f"""
            SELECT * FROM payments
            WHERE gateway_intent_id = $1 AND amount >= 0 AND {LIVE}
            ORDER BY created_at DESC, id DESC
            LIMIT 1
        """, intent_id)
        return self._to_model(row)

    async def list_by_intent_id(self, intent_id: str) -> List[Payment]:
        """Charges opened under one gateway intent (a multi-ticket checkout shares one). Refund rows excluded."""
        rows = await self.conn.fetch(f"""
            SELECT * FROM payments
            WHERE gateway_intent_id = $1 AND amount >= 0 AND {LIVE}
            ORDER BY id
        """, intent_id)
        return self._to_models(rows)

    async def create(
        self,
        ticket_id: int,
        customer_id: str,
        method: PaymentMethod,
        amount: Decimal,
        status: PaymentStatus = PaymentStatus.PENDING,
        gateway_intent_id: Optional[str] = None
    ) -> Payment:
        row = await self.conn.fetchrow("""
            INSERT INTO payments (
                amount, payment_date, status, transaction_id, payment_method,
                ticket_id, customer_id, gateway_intent_id, created_at, updated_at
            ) VALUES (
                $1, NOW(), $2, $3, $4, $5, $6, $7, NOW(), NOW()
            )
            RETURNING *
        """,
            amount,
            status.value,
            generate_transaction_id(),
            method.value,
            ticket_id,
            customer_id,
            gateway_intent_id
        )
        return self._to_model(row)

    async def update_status(self, payment_id: int, status: PaymentStatus) -> bool:
        result = await self.conn.execute(f"""
            UPDATE payments SET status = $2, updated_at = NOW()
            WHERE id = $1 AND {LIVE}
        """, payment_id, status.value)
        return affected_rows(result) == 1

    async def attach_intent_id(self, payment_id: int, intent_id: str) -> bool:
        result = await self.conn.execute(f"""
            UPDATE payments SET gateway_intent_id = $2, updated_at = NOW()
            WHERE id = $1 AND {LIVE}
        """, payment_id, intent_id)
        return affected_rows(result) == 1

    async def transition(
        self,
        payment_id: int,
        from_status: PaymentStatus,
        to_status: PaymentStatus,
        intent_id: Optional[str] = None
    ) -> Optional[Payment]:
        """Guarded status change; None unless the payment is currently in from_status."""
        row = await self.conn.fetchrow(f"""
            UPDATE payments
            SET status = $3,
                gateway_intent_id = COALESCE($4, gateway_intent_id),
                updated_at = NOW()
            WHERE id = $1 AND status = $2 AND {LIVE}
            RETURNING *
        """, payment_id, from_status.value, to_status.value, intent_id)
        return self._to_model(row)

    async def fail_pending_for_ticket(self, ticket_id: int) -> int:
        result = await self.conn.execute(f"""
            UPDATE payments SET status = 'failed', updated_at = NOW()
            WHERE ticket_id = $1 AND status = 'pending' AND {LIVE}
        """, ticket_id)
        return affected_rows(result)

    async def latest_completed_for_ticket(self, ticket_id: int) -> Optional[Payment]:
        """Most recent settled charge. Refund rows (negative amounts) are not charges."""
        row = await self.conn.fetchrow(f"""
            SELECT * FROM payments
            WHERE ticket_id = $1 AND status = 'completed' AND amount > 0 AND {LIVE}
            ORDER BY payment_date DESC, id DESC
            LIMIT 1
        """, ticket_id)
        return self._to_model(row)

    async def total_revenue(self) -> Decimal:
        total = await self.conn.fetchval(f"""
            SELECT COALESCE(SUM(amount), 0) FROM payments
            WHERE status = 'completed' AND {LIVE}
        """)
        return Decimal(str(total or 0))

    async def revenue_by_organizer(self, organizer_id: str) -> Decimal:
        total = await self.conn.fetchval("""
            SELECT COALESCE(SUM(p.amount), 0)
            FROM payments p
            JOIN tickets t ON t.id = p.ticket_id
            JOIN events e ON e.id = t.event_id
            WHERE e.organizer_id = $1
              AND p.status = 'completed'
              AND p.deleted_at IS NULL
        """, organizer_id)
        return Decimal(str(total or 0))
