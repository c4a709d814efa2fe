"""Public promotions router."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.commerce_service.models import PromotionType
from services.commerce_service.schemas import PromotionResponse
from services.commerce_service.services import promotions
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["promotions"])


@router.get("/promotions", response_model=list[PromotionResponse])
async def list_promotions(
    type: Optional[PromotionType] = Query(None, description="banner or card"),
    db: AsyncSession = Depends(get_async_db),
):
    """Promotions running right now, in display order."""
    return [promotions.to_response(p) for p in await promotions.list_active(db, type=type)]


@router.get("/promotions/featured", response_model=list[PromotionResponse])
async def list_featured_promotions(
    type: Optional[PromotionType] = None,
    db: AsyncSession = Depends(get_async_db),
):
    return [promotions.to_response(p) for p in await promotions.list_featured(db, type=type)]


@router.get("/promotions/{promotion_id}", response_model=PromotionResponse)
async def get_promotion(
    promotion_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    return promotions.to_response(await promotions.get_promotion(db, promotion_id))
