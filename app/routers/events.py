from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from datetime import datetime
from app.core.dependencies import AuthenticatedUser, require_admin, require_organizer
from app.models.event import (
    Event, EventCreate, EventUpdate, EventSearch, EventAvailability, EventPrice
)
from app.services import events_service

router = APIRouter()


@router.get("", response_model=List[Event])
async def list_events(
    category: Optional[str] = Query(None, description="Filter by category (substring)"),
    date: Optional[datetime] = Query(None, description="Filter by calendar day"),
    location: Optional[str] = Query(None, description="Filter by location (substring)"),
    q: Optional[str] = Query(None, description="Free text over title and description")
):
    """
    List active events (PUBLIC). Any filter turns this into a search,
    newest event date first.
    """
    filters = EventSearch(category=category, date=date, location=location, search_term=q)
    if any([category, date, location, q]):
        return await events_service.search_events(filters)
    return await events_service.list_events()


@router.get("/upcoming", response_model=List[Event])
async def list_upcoming_events():
    """Active events that have not happened yet, soonest first (PUBLIC)."""
    return await events_service.list_upcoming()


@router.get("/mine", response_model=List[Event])
async def list_my_events(user: AuthenticatedUser = Depends(require_organizer)):
    """Events owned by the current organizer."""
    return await events_service.list_by_organizer(user.user_id)


@router.get("/all", response_model=List[Event])
async def list_all_events(user: AuthenticatedUser = Depends(require_admin)):
    """Every non-deleted event, including inactive ones (ADMIN)."""
    return await events_service.list_all_events()


@router.get("/{event_id}", response_model=Event)
async def get_event(event_id: int):
    """Get event details by ID (PUBLIC)."""
    event = await events_service.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("/{event_id}/availability", response_model=EventAvailability)
async def check_availability(event_id: int, count: int = Query(1, ge=1, le=100)):
    event = await events_service.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    return EventAvailability(
        event_id=event_id,
        requested=count,
        available_tickets=event.available_tickets,
        is_available=await events_service.check_availability(event_id, count)
    )


@router.get("/{event_id}/price", response_model=EventPrice)
async def calculate_price(event_id: int, promotion_code: Optional[str] = Query(None, max_length=50)):
    """
    Ticket price with an optional promotion code applied (PUBLIC).
    An invalid or expired code simply yields the base price.
    """
    event = await events_service.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    return EventPrice(
        event_id=event_id,
        base_price=event.base_price,
        final_price=await events_service.calculate_price(event_id, promotion_code),
        promotion_code=promotion_code
    )


@router.post("", response_model=Event, status_code=201)
async def create_event(
    data: EventCreate,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Create a new event. available_tickets starts equal to capacity.

    ```json
    {
        "title": "Rock Night",
        "description": "Three bands, one night",
        "date": "2027-03-15T20:00:00",
        "location": "Main Hall",
        "category": "concert",
        "capacity": 500,
        "base_price": "45.00"
    }
    ```
    """
    return await events_service.create_event(user.user_id, data)


@router.patch("/{event_id}", response_model=Event)
async def update_event(
    event_id: int,
    data: EventUpdate,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Update an event.

    **Business rules:**
    - Organizers can only edit their own events
    - Capacity cannot drop below the tickets already sold
    """
    event = await events_service.update_event(event_id, data, user.organizer_scope())
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: int,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Soft delete an event (sets deleted_at).
    """
    deleted = await events_service.delete_event(event_id, user.organizer_scope())
    if not deleted:
        raise HTTPException(status_code=404, detail="Event not found")
