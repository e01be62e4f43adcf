import logging
import time
from typing import Optional, Dict, Any
from fastapi import Request
from app.repositories import get_repositories

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session-token"


class SessionContext:
    """Session context object"""
    def __init__(self, session_data: Optional[Dict[str, Any]] = None):
        if session_data:
            self.user_id = str(session_data['user_id'])
            self.email = session_data['email']
            self.first_name = session_data.get('first_name')
            self.last_name = session_data.get('last_name')
            self.role = session_data['role']
            self.expires_at = session_data.get('expires_at')
            self.is_valid = True
        else:
            self.user_id = None
            self.email = None
            self.first_name = None
            self.last_name = None
            self.role = None
            self.expires_at = None
            self.is_valid = False

    @property
    def name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or (self.email or "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'email': self.email,
            'role': self.role,
            'expires_at': self.expires_at,
            'is_valid': self.is_valid
        }


async def load_session(session_token: str) -> SessionContext:
    async with get_repositories(use_transaction=False) as repos:
        session_data = await repos.users.get_session_user(session_token)
    return SessionContext(session_data)


async def session_validation_middleware(request: Request, call_next):
    """
    Resolve the session cookie (if any) into request.state.session_context.
    Requests without a cookie never touch the database; endpoints decide
    whether an anonymous context is acceptable.
    """
    session_token = request.cookies.get(SESSION_COOKIE)
    request.state.session_context = SessionContext()

    if session_token:
        try:
            request.state.session_context = await load_session(session_token)
        except Exception as e:
            logger.warning(f"Session validation error for path {request.url.path}: {e}")

    return await call_next(request)


def get_session_context(request: Request) -> SessionContext:
    """Helper function to get session context from request"""
    return getattr(request.state, 'session_context', SessionContext())


async def request_logging_middleware(request: Request, call_next):
    """Simple request logging middleware"""
    start_time = time.time()

    response = await call_next(request)

    duration = round((time.time() - start_time) * 1000, 2)
    session_context = getattr(request.state, 'session_context', None)
    user_id = getattr(session_context, 'user_id', None) or 'anonymous'

    logger.info(f"{request.method} {request.url.path} | {response.status_code} | {duration}ms | {user_id}")

    return response
