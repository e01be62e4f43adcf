import logging
from typing import Optional, List
from decimal import Decimal, ROUND_HALF_UP
from app.repositories import get_repositories
from app.models.promotion import Promotion, PromotionCreate, PromotionUpdate
from app.core.exceptions import ValidationError, AuthorizationError, NotFoundError
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def _check_rules(data) -> None:
    """Date window and discount range, re-checked here for callers that bypass request parsing."""
    if data.start_date >= data.end_date:
        raise ValidationError("Promotion start date must be before its end date")
    if data.discount_percentage < 0 or data.discount_percentage > 100:
        raise ValidationError("Discount percentage must be between 0 and 100")


async def list_promotions() -> List[Promotion]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.list_all()


async def get_promotion(promotion_id: int) -> Optional[Promotion]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.get_by_id(promotion_id)


async def list_by_event(event_id: int) -> List[Promotion]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.list_by_event(event_id)


async def get_by_code(code: str) -> Optional[Promotion]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.get_by_code(code)


async def list_active() -> List[Promotion]:
    """Promotions switched on whose window covers now"""
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.list_active(utcnow())


async def list_by_organizer(organizer_id: str) -> List[Promotion]:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.list_by_organizer(organizer_id)


async def is_owned_by_organizer(promotion_id: int, organizer_id: str) -> bool:
    async with get_repositories(use_transaction=False) as repos:
        return await repos.promotions.is_owned_by_organizer(promotion_id, organizer_id)


async def create_promotion(data: PromotionCreate, organizer_id: Optional[str] = None) -> Promotion:
    """Create a promotion; organizers may only attach promotions to their own events."""
    _check_rules(data)

    async with get_repositories() as repos:
        event = await repos.events.get_by_id(data.event_id)
        if not event:
            raise NotFoundError("Event not found")

        if organizer_id and event.organizer_id != organizer_id:
            raise AuthorizationError("You can only create promotions for your own events")

        if await repos.promotions.code_taken(data.code):
            raise ValidationError(f"Promotion code {data.code} already exists")

        promotion = await repos.promotions.create(data)

    logger.info(f"Created promotion {promotion.id} ({promotion.code}, {promotion.discount_percentage}%) for event {data.event_id}")
    return promotion


async def update_promotion(
    promotion_id: int,
    data: PromotionUpdate,
    organizer_id: Optional[str] = None
) -> Optional[Promotion]:
    _check_rules(data)

    async with get_repositories() as repos:
        existing = await repos.promotions.get_by_id(promotion_id)
        if not existing:
            return None

        if organizer_id and not await repos.promotions.is_owned_by_organizer(promotion_id, organizer_id):
            raise AuthorizationError("You can only edit promotions for your own events")

        if await repos.promotions.code_taken(data.code, exclude_id=promotion_id):
            raise ValidationError(f"Promotion code {data.code} already exists")

        promotion = await repos.promotions.update(promotion_id, data)

    logger.info(f"Updated promotion {promotion_id}")
    return promotion


async def delete_promotion(promotion_id: int, organizer_id: Optional[str] = None) -> bool:
    async with get_repositories() as repos:
        if organizer_id and not await repos.promotions.is_owned_by_organizer(promotion_id, organizer_id):
            existing = await repos.promotions.get_by_id(promotion_id)
            if not existing:
                return False
            raise AuthorizationError("You can only delete promotions for your own events")

        return await repos.promotions.soft_delete(promotion_id)


async def validate_promotion(code: str, event_id: int) -> bool:
    """Code exists for this event, is switched on, and now falls inside its window"""
    async with get_repositories(use_transaction=False) as repos:
        promotion = await repos.promotions.find_valid(code, event_id, utcnow())
    return promotion is not None


async def calculate_discount(code: str, amount: Decimal) -> Decimal:
    """Discount `code` would take off `amount` right now; 0 if the code is unknown or out of window."""
    promotion = await get_by_code(code)
    if not promotion or not promotion.is_valid_at(utcnow()):
        return Decimal("0")

    discount = Decimal(amount) * promotion.discount_percentage / Decimal(100)
    return discount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
