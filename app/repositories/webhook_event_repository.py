from app.repositories.base import affected_rows


class WebhookEventRepository:
    """Ledger of gateway event ids already applied."""

    def __init__(self, conn):
        self.conn = conn

    async def record(self, event_id: str, event_type: str) -> bool:
        """Insert the event id; False if it was already there."""
        status = await self.conn.execute("""
            INSERT INTO processed_webhook_events (event_id, event_type, processed_at)
            VALUES ($1, $2, NOW())
            ON CONFLICT (event_id) DO NOTHING
        """, event_id, event_type)
        return affected_rows(status) == 1
