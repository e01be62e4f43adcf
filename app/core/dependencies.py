from fastapi import Depends, Request
from app.core.middleware import SessionContext, get_session_context
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.models.user import UserRole
import logging

logger = logging.getLogger(__name__)


def get_current_session(request: Request) -> SessionContext:
    """
    Dependency to get current session context.
    Returns SessionContext (may be invalid if not authenticated).
    """
    return get_session_context(request)


class AuthenticatedUser:
    """
    Dependency class for endpoints that require a signed-in user.
    """
    def __init__(self, request: Request):
        self.session = get_session_context(request)

        if not self.session.is_valid:
            raise AuthenticationError("Authentication required")

    @property
    def user_id(self) -> str:
        return str(self.session.user_id)

    @property
    def email(self) -> str:
        return self.session.email

    @property
    def name(self) -> str:
        return self.session.name

    @property
    def role(self) -> UserRole:
        return UserRole(self.session.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_organizer(self) -> bool:
        return self.role == UserRole.EVENT_ORGANIZER

    def organizer_scope(self):
        """Organizer id to scope writes by; None for admins, who may act on anything."""
        return None if self.is_admin else self.user_id


def get_authenticated_user(request: Request) -> AuthenticatedUser:
    """Dependency to get the authenticated user"""
    return AuthenticatedUser(request)


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
    user: AuthenticatedUser = Depends(require_roles(UserRole.ADMIN))
    """
    def dependency(user: AuthenticatedUser = Depends(get_authenticated_user)) -> AuthenticatedUser:
        if user.role not in roles:
            logger.warning(f"User {user.user_id} with role {user.role.value} denied; needs one of {[r.value for r in roles]}")
            raise AuthorizationError("You do not have permission to perform this action")
        return user

    return dependency


require_admin = require_roles(UserRole.ADMIN)
require_organizer = require_roles(UserRole.EVENT_ORGANIZER, UserRole.ADMIN)
require_customer = require_roles(UserRole.CUSTOMER, UserRole.EVENT_ORGANIZER, UserRole.ADMIN)
