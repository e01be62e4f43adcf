from fastapi import APIRouter, Depends, HTTPException
from typing import List
from app.core.dependencies import AuthenticatedUser, require_organizer
from app.models.promotion import (
    Promotion, PromotionCreate, PromotionUpdate,
    ValidatePromotionRequest, PromotionValidation, DiscountRequest, DiscountResult
)
from app.services import promotions_service

router = APIRouter()


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@router.get("/active", response_model=List[Promotion])
async def list_active_promotions():
    """Promotions that are switched on and currently inside their date window."""
    return await promotions_service.list_active()


@router.post("/validate", response_model=PromotionValidation)
async def validate_promotion_code(data: ValidatePromotionRequest):
    """
    Check whether a code can be used for an event right now.
    Codes are stored in upper case and compared as given.
    """
    return PromotionValidation(
        code=data.code,
        event_id=data.event_id,
        is_valid=await promotions_service.validate_promotion(data.code, data.event_id)
    )


@router.post("/discount", response_model=DiscountResult)
async def calculate_discount(data: DiscountRequest):
    """Discount a code would take off an amount; zero when the code is not usable."""
    discount = await promotions_service.calculate_discount(data.code, data.amount)
    return DiscountResult(
        code=data.code,
        original_amount=data.amount,
        discount_amount=discount,
        final_amount=data.amount - discount
    )


@router.get("/event/{event_id}", response_model=List[Promotion])
async def list_event_promotions(event_id: int):
    return await promotions_service.list_by_event(event_id)


# ============================================================================
# ORGANIZER ENDPOINTS
# ============================================================================

@router.get("/mine", response_model=List[Promotion])
async def list_my_promotions(user: AuthenticatedUser = Depends(require_organizer)):
    """Promotions on events owned by the current organizer."""
    return await promotions_service.list_by_organizer(user.user_id)


@router.get("/{promotion_id}", response_model=Promotion)
async def get_promotion(
    promotion_id: int,
    user: AuthenticatedUser = Depends(require_organizer)
):
    promotion = await promotions_service.get_promotion(promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion


@router.post("", response_model=Promotion, status_code=201)
async def create_promotion(
    data: PromotionCreate,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """
    Create a promotion code for an event.

    **Business rules:**
    - Codes are unique (stored upper case)
    - start_date must be before end_date
    - discount_percentage between 0 and 100

    ```json
    {
        "code": "SAVE20",
        "description": "Early bird",
        "discount_percentage": 20,
        "start_date": "2027-01-01T00:00:00",
        "end_date": "2027-02-01T00:00:00",
        "event_id": 1
    }
    ```
    """
    return await promotions_service.create_promotion(data, user.organizer_scope())


@router.put("/{promotion_id}", response_model=Promotion)
async def update_promotion(
    promotion_id: int,
    data: PromotionUpdate,
    user: AuthenticatedUser = Depends(require_organizer)
):
    promotion = await promotions_service.update_promotion(promotion_id, data, user.organizer_scope())
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion


@router.delete("/{promotion_id}", status_code=204)
async def delete_promotion(
    promotion_id: int,
    user: AuthenticatedUser = Depends(require_organizer)
):
    """Soft delete a promotion."""
    if not await promotions_service.delete_promotion(promotion_id, user.organizer_scope()):
        raise HTTPException(status_code=404, detail="Promotion not found")
