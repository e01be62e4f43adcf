from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from app.utils.dates import UTCDateTime


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, description="Nombre del evento")
    description: Optional[str] = Field(None, max_length=2000, description="Descripcion del evento")
    date: UTCDateTime = Field(..., description="Fecha y hora del evento")
    location: str = Field(..., min_length=1, max_length=300, description="Lugar del evento")
    category: str = Field(..., min_length=1, max_length=100, description="Categoria (concierto, teatro, etc)")
    base_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Precio base de la boleta")
    image_url: Optional[str] = Field(None, max_length=500)


class EventCreate(EventBase):
    """Schema para crear un evento"""
    capacity: int = Field(..., ge=1, description="Aforo total del evento")


class EventUpdate(BaseModel):
    """Schema para actualizar un evento"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    date: Optional[UTCDateTime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=300)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    base_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class Event(EventBase):
    """Schema completo de evento"""
    id: int
    capacity: int
    available_tickets: int
    is_active: bool = True
    organizer_id: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @property
    def tickets_sold(self) -> int:
        return self.capacity - self.available_tickets

    class Config:
        from_attributes = True


class EventSearch(BaseModel):
    """Filtros de busqueda de eventos"""
    category: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    search_term: Optional[str] = None


class EventAvailability(BaseModel):
    event_id: int
    requested: int
    available_tickets: int
    is_available: bool


class EventPrice(BaseModel):
    event_id: int
    base_price: Decimal
    final_price: Decimal
    promotion_code: Optional[str] = None
