from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PaymentStatus(str, Enum):
    """Estados de un pago"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Metodos de pago soportados"""
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    STRIPE = "stripe"


class Payment(BaseModel):
    """Schema completo de pago. Los reembolsos se registran con monto negativo."""
    id: int
    amount: Decimal
    payment_date: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str
    payment_method: PaymentMethod
    ticket_id: int
    customer_id: str
    gateway_intent_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class RevenueSummary(BaseModel):
    total_revenue: Decimal
    organizer_id: Optional[str] = None


class TransactionValidation(BaseModel):
    transaction_id: str
    is_valid: bool


class RefundResult(BaseModel):
    ticket_id: int
    refunded: bool
    refund_amount: Decimal = Decimal("0")
    gateway_refund_id: Optional[str] = None


class WebhookAck(BaseModel):
    """Respuesta al webhook de la pasarela"""
    received: bool = True
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    duplicate: bool = False
    payments_updated: int = 0
