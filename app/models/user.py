from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """Roles del sistema"""
    ADMIN = "admin"
    EVENT_ORGANIZER = "event_organizer"
    CUSTOMER = "customer"


class User(BaseModel):
    """Usuario referenciado por el dominio. La gestion de identidad vive fuera de este servicio."""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER
    loyalty_points: int = 0
    lockout_end: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    def is_active_at(self, now: datetime) -> bool:
        return self.lockout_end is None or self.lockout_end <= now

    class Config:
        from_attributes = True
