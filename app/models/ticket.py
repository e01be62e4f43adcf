from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class TicketStatus(str, Enum):
    """Estados de una boleta"""
    ACTIVE = "active"
    USED = "used"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Ticket(BaseModel):
    """Schema completo de boleta"""
    id: int
    qr_code: str
    price: Decimal
    seat_number: Optional[str] = None
    status: TicketStatus = TicketStatus.ACTIVE
    purchase_date: datetime
    event_id: int
    customer_id: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketWithEvent(Ticket):
    """Boleta con datos del evento para listados del comprador"""
    event_title: Optional[str] = None
    event_date: Optional[datetime] = None
    event_location: Optional[str] = None
    payment_status: Optional[str] = None


class TicketQRCode(BaseModel):
    ticket_id: int
    qr_code: str
    qr_image_base64: str
    qr_data_url: str


class TicketValidationRequest(BaseModel):
    qr_code: str = Field(..., min_length=1, max_length=100)


class TicketValidationResponse(BaseModel):
    qr_code: str
    is_valid: bool
    checked_in: bool = False


class PurchaseRequest(BaseModel):
    """Request de compra de boletas"""
    event_id: int
    quantity: int = Field(default=1, ge=1, le=10, description="Cantidad de boletas")
    promotion_code: Optional[str] = Field(None, max_length=50)
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class PurchaseOutcome(str, Enum):
    ALL = "all"
    PARTIAL = "partial"
    NONE = "none"


class CheckoutResult(BaseModel):
    """Resultado de la compra: que boletas se emitieron y a donde pagar"""
    outcome: PurchaseOutcome
    requested: int
    tickets: List[Ticket] = []
    payment_ids: List[int] = []
    unit_price: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    checkout_url: Optional[str] = None

    @property
    def issued(self) -> int:
        return len(self.tickets)
