from typing import Optional
from app.models.user import User
from app.repositories.base import BaseRepository, LIVE


class UserRepository(BaseRepository):
    table = "users"
    model = User

    async def get_by_id(self, user_id: str) -> Optional[User]:
        row = await self.conn.fetchrow(f"""
            SELECT id, email, first_name, last_name, role, loyalty_points, lockout_end, deleted_at
            FROM users WHERE id = $1 AND {LIVE}
        """, user_id)
        return self._to_model(row)

    async def get_session_user(self, session_token: str) -> Optional[dict]:
        """Resolve a live session cookie to its user row plus session expiry."""
        row = await self.conn.fetchrow("""
            SELECT u.id AS user_id, u.email, u.first_name, u.last_name, u.role,
                   u.lockout_end, s.id AS session_id, s.expires_at
            FROM sessions s
            JOIN users u ON u.id = s.user_id
            WHERE s.id = $1
              AND s.is_active = true
              AND s.expires_at > NOW()
              AND u.deleted_at IS NULL
              AND (u.lockout_end IS NULL OR u.lockout_end <= NOW())
            LIMIT 1
        """, session_token)
        return dict(row) if row else None
