from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from decimal import Decimal
from datetime import datetime


class GatewayEventData(BaseModel):
    object: Dict[str, Any] = Field(default_factory=dict)


class GatewayEvent(BaseModel):
    """Evento de webhook ya verificado (formato Stripe)"""
    id: str
    type: str
    created: Optional[int] = None
    data: GatewayEventData = Field(default_factory=GatewayEventData)

    @property
    def object(self) -> Dict[str, Any]:
        return self.data.object

    def metadata(self) -> Dict[str, str]:
        return self.object.get("metadata") or {}


class TicketConfirmation(BaseModel):
    """Datos para el correo de confirmacion, armados dentro de la transaccion del webhook"""
    payment_id: int
    ticket_id: int
    qr_code: str
    price: Decimal
    seat_number: Optional[str] = None
    customer_email: str
    customer_name: str
    event_title: str
    event_date: datetime
    event_location: str


class WebhookOutcome(BaseModel):
    event_id: str
    event_type: str
    duplicate: bool = False
    payment_ids: List[int] = []
    confirmations: List[TicketConfirmation] = []
