from typing import Optional, List
from datetime import datetime
from app.models.promotion import Promotion, PromotionCreate, PromotionUpdate
from app.repositories.base import BaseRepository, LIVE


class PromotionRepository(BaseRepository):
    table = "promotions"
    model = Promotion

    async def list_by_event(self, event_id: int) -> List[Promotion]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM promotions
            WHERE event_id = $1 AND {LIVE}
            ORDER BY start_date DESC
        """, event_id)
        return self._to_models(rows)

    async def get_by_code(self, code: str) -> Optional[Promotion]:
        row = await self.conn.fetchrow(
            f"SELECT * FROM promotions WHERE code = $1 AND {LIVE}",
            code
        )
        return self._to_model(row)

    async def code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        exists = await self.conn.fetchval(f"""
            SELECT EXISTS(
                SELECT 1 FROM promotions
                WHERE code = $1 AND ($2::int IS NULL OR id <> $2) AND {LIVE}
            )
        """, code, exclude_id)
        return bool(exists)

    async def list_active(self, now: datetime) -> List[Promotion]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM promotions
            WHERE is_active = true AND start_date <= $1 AND end_date >= $1 AND {LIVE}
            ORDER BY end_date ASC
        """, now)
        return self._to_models(rows)

    async def find_valid(self, code: str, event_id: int, now: datetime) -> Optional[Promotion]:
        """Promotion usable right now for this event, matched on the stored (upper-case) code."""
        row = await self.conn.fetchrow(f"""
            SELECT * FROM promotions
            WHERE code = $1
              AND event_id = $2
              AND is_active = true
              AND start_date <= $3 AND end_date >= $3
              AND {LIVE}
        """, code, event_id, now)
        return self._to_model(row)

    async def list_by_organizer(self, organizer_id: str) -> List[Promotion]:
        rows = await self.conn.fetch("""
            SELECT p.* FROM promotions p
            JOIN events e ON e.id = p.event_id
            WHERE e.organizer_id = $1 AND p.deleted_at IS NULL AND e.deleted_at IS NULL
            ORDER BY p.created_at DESC
        """, organizer_id)
        return self._to_models(rows)

    async def is_owned_by_organizer(self, promotion_id: int, organizer_id: str) -> bool:
        owned = await self.conn.fetchval("""
            SELECT EXISTS(
                SELECT 1 FROM promotions p
                JOIN events e ON e.id = p.event_id
                WHERE p.id = $1 AND e.organizer_id = $2 AND p.deleted_at IS NULL
            )
        """, promotion_id, organizer_id)
        return bool(owned)

    async def create(self, data: PromotionCreate) -> Promotion:
        row = await self.conn.fetchrow("""
            INSERT INTO promotions (
                code, description, discount_percentage, start_date, end_date,
                is_active, event_id, created_at, updated_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, NOW(), NOW())
            RETURNING *
        """,
            data.code,
            data.description,
            data.discount_percentage,
            data.start_date,
            data.end_date,
            data.is_active,
            data.event_id
        )
        return self._to_model(row)

    async def update(self, promotion_id: int, data: PromotionUpdate) -> Optional[Promotion]:
        row = await self.conn.fetchrow(f"""
            UPDATE promotions
            SET code = $2, description = $3, discount_percentage = $4,
                start_date = $5, end_date = $6, is_active = $7, updated_at = NOW()
            WHERE id = $1 AND {LIVE}
            RETURNING *
        """,
            promotion_id,
            data.code,
            data.description,
            data.discount_percentage,
            data.start_date,
            data.end_date,
            data.is_active
        )
        return self._to_model(row)
