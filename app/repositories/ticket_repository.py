from typing import Optional, List
from decimal import Decimal
from app.models.ticket import Ticket, TicketStatus, TicketWithEvent
from app.repositories.base import BaseRepository, LIVE
from app.utils.qr_generator import generate_ticket_code


class TicketRepository(BaseRepository):
    table = "tickets"
    model = Ticket
    default_order = "purchase_date DESC"

    async def list_by_customer(self, customer_id: str) -> List[TicketWithEvent]:
        rows = await self.conn.fetch(f"""
            SELECT t.*,
                   e.title AS event_title,
                   e.date AS event_date,
                   e.location AS event_location,
                   (
                       SELECT p.status FROM payments p
                       WHERE p.ticket_id = t.id AND p.deleted_at IS NULL AND p.amount >= 0
                       ORDER BY p.created_at DESC, p.id DESC
                       LIMIT 1
                   ) AS payment_status
            FROM tickets t
            JOIN events e ON e.id = t.event_id
            WHERE t.customer_id = $1 AND t.{LIVE}
            ORDER BY t.purchase_date DESC
        """, customer_id)
        return [TicketWithEvent(**dict(row)) for row in rows]

    async def list_by_event(self, event_id: int) -> List[Ticket]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM tickets
            WHERE event_id = $1 AND {LIVE}
            ORDER BY purchase_date DESC
        """, event_id)
        return self._to_models(rows)

    async def get_by_qr_code(self, qr_code: str) -> Optional[Ticket]:
        row = await self.conn.fetchrow(
            f"SELECT * FROM tickets WHERE qr_code = $1 AND {LIVE}",
            qr_code
        )
        return self._to_model(row)

    async def create(
        self,
        event_id: int,
        customer_id: str,
        price: Decimal,
        seat_number: Optional[str] = None
    ) -> Ticket:
        row = await self.conn.fetchrow("""
            INSERT INTO tickets (
                qr_code, price, seat_number, status, purchase_date,
                event_id, customer_id, created_at, updated_at
            ) VALUES (
                $1, $2, $3, 'active', NOW(), $4, $5, NOW(), NOW()
            )
            RETURNING *
        """,
            generate_ticket_code(),
            price,
            seat_number,
            event_id,
            customer_id
        )
        return self._to_model(row)

    async def update_status(self, ticket_id: int, status: TicketStatus) -> Optional[TicketStatus]:
        """Overwrite the status. Returns the status the ticket had before, or None if missing."""
        row = await self.conn.fetchrow(f"""
            UPDATE tickets t
            SET status = $2, updated_at = NOW()
            FROM (
                SELECT id, status AS previous_status
                FROM tickets
                WHERE id = $1 AND {LIVE}
                FOR UPDATE
            ) prev
            WHERE t.id = prev.id
            RETURNING prev.previous_status
        """, ticket_id, status.value)
        if not row:
            return None
        return TicketStatus(row['previous_status'])

    async def transition(
        self,
        ticket_id: int,
        from_status: TicketStatus,
        to_status: TicketStatus
    ) -> Optional[Ticket]:
        """Move from_status -> to_status; None when the ticket is not currently in from_status."""
        row = await self.conn.fetchrow(f"""
            UPDATE tickets
            SET status = $3, updated_at = NOW()
            WHERE id = $1 AND status = $2 AND {LIVE}
            RETURNING *
        """, ticket_id, from_status.value, to_status.value)
        return self._to_model(row)
