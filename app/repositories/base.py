"""
Base repository.

Every repository wraps a single asyncpg connection (and therefore whatever
transaction the caller opened on it). Rows are never physically deleted:
`deleted_at` is stamped instead and the `LIVE` predicate is part of every
default read below.
"""
import logging
from typing import Optional, List, Type, Any
from pydantic import BaseModel

logger = logging.getLogger(__name__)

LIVE = "deleted_at IS NULL"


def affected_rows(status: str) -> int:
    """Parse the row count out of an asyncpg command tag ('UPDATE 1', 'INSERT 0 1')."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class BaseRepository:
    table: str = ""
    model: Type[BaseModel] = BaseModel
    default_order: str = "created_at DESC"

    def __init__(self, conn):
        self.conn = conn

    def _to_model(self, row) -> Optional[Any]:
        if not row:
            return None
        return self.model(**dict(row))

    def _to_models(self, rows) -> List[Any]:
        return [self.model(**dict(row)) for row in rows]

    async def get_by_id(self, entity_id: int) -> Optional[Any]:
        row = await self.conn.fetchrow(
            f"SELECT * FROM {self.table} WHERE id = $1 AND {LIVE}",
            entity_id
        )
        return self._to_model(row)

    async def list_all(self) -> List[Any]:
        rows = await self.conn.fetch(
            f"SELECT * FROM {self.table} WHERE {LIVE} ORDER BY {self.default_order}"
        )
        return self._to_models(rows)

    async def soft_delete(self, entity_id: int) -> bool:
        status = await self.conn.execute(
            f"UPDATE {self.table} SET deleted_at = NOW(), updated_at = NOW() WHERE id = $1 AND {LIVE}",
            entity_id
        )
        deleted = affected_rows(status) > 0
        if deleted:
            logger.info(f"Soft deleted {self.table} row {entity_id}")
        return deleted
