from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from app.utils.dates import UTCDateTime


class PromotionBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Codigo promocional (se guarda en mayusculas)")
    description: Optional[str] = Field(None, max_length=500)
    discount_percentage: Decimal = Field(..., ge=0, le=100, description="Porcentaje de descuento 0-100")
    start_date: UTCDateTime = Field(..., description="Inicio de vigencia")
    end_date: UTCDateTime = Field(..., description="Fin de vigencia")

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode='after')
    def check_window(self):
        if self.start_date >= self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class PromotionCreate(PromotionBase):
    """Schema para crear promocion"""
    event_id: int
    is_active: bool = True


class PromotionUpdate(PromotionBase):
    """Schema para actualizar promocion (reemplazo completo de campos editables)"""
    is_active: bool = True


class Promotion(BaseModel):
    """Schema completo de promocion"""
    id: int
    code: str
    description: Optional[str] = None
    discount_percentage: Decimal
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    event_id: int
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    def is_valid_at(self, now: datetime, event_id: Optional[int] = None) -> bool:
        if not self.is_active:
            return False
        if event_id is not None and self.event_id != event_id:
            return False
        return self.start_date <= now <= self.end_date

    class Config:
        from_attributes = True


class ValidatePromotionRequest(BaseModel):
    """Request para validar codigo promocional"""
    code: str = Field(..., min_length=1, max_length=50)
    event_id: int


class PromotionValidation(BaseModel):
    code: str
    event_id: int
    is_valid: bool


class DiscountRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    amount: Decimal = Field(..., ge=0)


class DiscountResult(BaseModel):
    code: str
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
