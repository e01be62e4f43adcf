from typing import Optional, List, Dict, Any
from datetime import datetime
from app.models.event import Event, EventCreate, EventSearch
from app.repositories.base import BaseRepository, LIVE, affected_rows


class EventRepository(BaseRepository):
    table = "events"
    model = Event

    async def list_active(self) -> List[Event]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM events
            WHERE is_active = true AND {LIVE}
            ORDER BY created_at DESC
        """)
        return self._to_models(rows)

    async def list_by_organizer(self, organizer_id: str) -> List[Event]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM events
            WHERE organizer_id = $1 AND {LIVE}
            ORDER BY created_at DESC
        """, organizer_id)
        return self._to_models(rows)

    async def search(self, filters: EventSearch) -> List[Event]:
        query = f"SELECT * FROM events WHERE is_active = true AND {LIVE}"
        params = []
        param_idx = 1

        if filters.category:
            query += f" AND category ILIKE '%' || ${param_idx} || '%'"
            params.append(filters.category)
            param_idx += 1

        if filters.date:
            query += f" AND date::date = ${param_idx}::date"
            params.append(filters.date)
            param_idx += 1

        if filters.location:
            query += f" AND location ILIKE '%' || ${param_idx} || '%'"
            params.append(filters.location)
            param_idx += 1

        if filters.search_term:
            query += f" AND (title ILIKE '%' || ${param_idx} || '%' OR description ILIKE '%' || ${param_idx} || '%')"
            params.append(filters.search_term)
            param_idx += 1

        query += " ORDER BY date DESC"

        rows = await self.conn.fetch(query, *params)
        return self._to_models(rows)

    async def list_upcoming(self, now: datetime) -> List[Event]:
        rows = await self.conn.fetch(f"""
            SELECT * FROM events
            WHERE is_active = true AND date > $1 AND {LIVE}
            ORDER BY date ASC
        """, now)
        return self._to_models(rows)

    async def create(self, organizer_id: str, data: EventCreate) -> Event:
        row = await self.conn.fetchrow("""
            INSERT INTO events (
                title, description, date, location, category,
                capacity, available_tickets, base_price, image_url,
                is_active, organizer_id, created_at, updated_at
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $6, $7, $8, true, $9, NOW(), NOW()
            )
            RETURNING *
        """,
            data.title,
            data.description,
            data.date,
            data.location,
            data.category,
            data.capacity,
            data.base_price,
            data.image_url,
            organizer_id
        )
        return self._to_model(row)

    async def update(self, event_id: int, fields: Dict[str, Any]) -> Optional[Event]:
        """Update plain columns. Capacity goes through resize()."""
        if not fields:
            return await self.get_by_id(event_id)

        assignments = []
        params = [event_id]
        for column, value in fields.items():
            params.append(value)
            assignments.append(f"{column} = ${len(params)}")

        row = await self.conn.fetchrow(f"""
            UPDATE events
            SET {', '.join(assignments)}, updated_at = NOW()
            WHERE id = $1 AND {LIVE}
            RETURNING *
        """, *params)
        return self._to_model(row)

    async def resize(self, event_id: int, capacity: int) -> Optional[Event]:
        """
        Change capacity and shift available_tickets by the same delta.
        Refuses (returns None) when the new capacity is below tickets already sold.
        """
        row = await self.conn.fetchrow(f"""
            UPDATE events
            SET available_tickets = available_tickets + ($2 - capacity),
                capacity = $2,
                updated_at = NOW()
            WHERE id = $1 AND {LIVE}
              AND capacity - available_tickets <= $2
            RETURNING *
        """, event_id, capacity)
        return self._to_model(row)

    async def decrement_available(self, event_id: int, count: int) -> bool:
        """Take `count` seats in a single statement; False if the event cannot cover it."""
        status = await self.conn.execute(f"""
            UPDATE events
            SET available_tickets = available_tickets - $2, updated_at = NOW()
            WHERE id = $1 AND is_active = true AND {LIVE}
              AND available_tickets >= $2
        """, event_id, count)
        return affected_rows(status) == 1

    async def increment_available(self, event_id: int, count: int) -> bool:
        """Give `count` seats back, never past capacity."""
        status = await self.conn.execute(f"""
            UPDATE events
            SET available_tickets = available_tickets + $2, updated_at = NOW()
            WHERE id = $1 AND {LIVE}
              AND available_tickets + $2 <= capacity
        """, event_id, count)
        return affected_rows(status) == 1
