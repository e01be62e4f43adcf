import logging
from typing import Optional, List
from decimal import Decimal, ROUND_HALF_UP
from app.repositories import get_repositories, Repositories
from app.models.event import Event, EventCreate, EventUpdate, EventSearch
from app.core.exceptions import ValidationError, AuthorizationError
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Columns an organizer may edit directly; capacity is handled by resize()
EDITABLE_FIELDS = {"title", "description", "date", "location", "category", "base_price", "image_url", "is_active"}


def apply_discount(base_price: Decimal, discount_percentage: Decimal) -> Decimal:
    """base_price - base_price * pct / 100, rounded to cents."""
    discount = Decimal(base_price) * Decimal(discount_percentage) / Decimal(100)
    return (Decimal(base_price) - discount).quantize(CENTS, rounding=ROUND_HALF_UP)


async def price_for_event(repos: Repositories, event: Event, promotion_code: Optional[str] = None) -> Decimal:
    """Ticket price for `event`, honouring a promotion only if it is valid for this event right now."""
    base_price = Decimal(event.base_price).quantize(CENTS, rounding=ROUND_HALF_UP)
    if not promotion_code:
        return base_price

    promotion = await repos.promotions.find_valid(promotion_code, event.id, utcnow())
    if not promotion:
        logger.info(f"Promotion code {promotion_code} not valid for event {event.id}, charging base price")
        return base_price

    return apply_discount(base_price, promotion.discount_percentage)


async def list_events() -> List[Event]:
    """Active, non-deleted events"""
    async with get_repositories(use_transaction=False) as repos:
        return await repos.events.list_active()


async def list_all_events() -> List[Event]:
    """Every non-deleted event, active or not (admin view)"""
    async with get_repositories(use_transaction=False) as repos:
        return await repos.events.list_all()


async def get_event(event_id: int) -> Optional[Event]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.events.get_by_id(event_id)


async def list_by_organizer(organizer_id: str) -> List[Event]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.events.list_by_organizer(organizer_id)


async def search_events(filters: EventSearch) -> List[Event]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.events.search(filters)


async def list_upcoming() -> List[Event]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.events.list_upcoming(utcnow())


async def create_event(organizer_id: str, data: EventCreate) -> Event:
    async with get_repositories() as repos:
        event = await repos.events.create(organizer_id, data)

    logger.info(f"Created event {event.id} - {event.title} (organizer: {organizer_id})")
    return event


async def update_event(event_id: int, data: EventUpdate, organizer_id: Optional[str] = None) -> Optional[Event]:
    """
    Update an event. `organizer_id` restricts the change to that organizer's
    events; pass None for admin edits.

    Capacity changes move available_tickets by the same delta and are
    rejected when they would fall below the tickets already sold.
    """
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    new_capacity = changes.pop("capacity", None)
    fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}

    async with get_repositories() as repos:
        event = await repos.events.get_by_id(event_id)
        if not event:
            return None

        if organizer_id and event.organizer_id != organizer_id:
            raise AuthorizationError("You can only edit your own events")

        if new_capacity is not None and new_capacity != event.capacity:
            resized = await repos.events.resize(event_id, new_capacity)
            if not resized:
                raise ValidationError(
                    f"Cannot set capacity to {new_capacity}: {event.tickets_sold} tickets already sold",
                    {"tickets_sold": event.tickets_sold}
                )

        updated = await repos.events.update(event_id, fields)

    logger.info(f"Updated event {event_id}: {sorted(list(fields) + (['capacity'] if new_capacity else []))}")
    return updated


async def delete_event(event_id: int, organizer_id: Optional[str] = None) -> bool:
    """Soft delete; the event disappears from every default query"""
    async with get_repositories() as repos:
        event = await repos.events.get_by_id(event_id)
        if not event:
            return False

        if organizer_id and event.organizer_id != organizer_id:
            raise AuthorizationError("You can only delete your own events")

        return await repos.events.soft_delete(event_id)


async def check_availability(event_id: int, requested_count: int) -> bool:
    """True iff the event is active and can cover `requested_count` seats"""
    async with get_repositories(use_transaction=False) as repos:
        event = await repos.events.get_by_id(event_id)

    if not event or not event.is_active:
        return False
    return event.available_tickets >= requested_count


async def calculate_price(event_id: int, promotion_code: Optional[str] = None) -> Decimal:
    """Final ticket price; 0 when the event does not exist"""
    async with get_repositories(use_transaction=False) as repos:
        event = await repos.events.get_by_id(event_id)
        if not event:
            return Decimal("0")
        return await price_for_event(repos, event, promotion_code)


async def reserve_tickets(event_id: int, count: int) -> bool:
    """Atomically take `count` seats"""
    if count < 1:
        raise ValidationError("Ticket count must be at least 1")

    async with get_repositories() as repos:
        reserved = await repos.events.decrement_available(event_id, count)

    if not reserved:
        logger.info(f"Could not reserve {count} seat(s) on event {event_id}")
    return reserved


async def release_tickets(event_id: int, count: int) -> bool:
    """Give `count` seats back, bounded by capacity"""
    if count < 1:
        raise ValidationError("Ticket count must be at least 1")

    async with get_repositories() as repos:
        return await repos.events.increment_available(event_id, count)
