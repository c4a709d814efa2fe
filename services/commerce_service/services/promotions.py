"""Storefront promotions: visibility rules and public reads."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import as_utc, utc_now
from libs.common.errors import NotFound
from services.commerce_service.models import Promotion, PromotionType
from services.commerce_service.schemas import PromotionResponse
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

FEATURED_LIMIT = 10


def is_expired(promotion: Promotion, now: Optional[datetime] = None) -> bool:
    """True once the end date has passed; open-ended promotions never expire."""
    if promotion.end_date is None:
        return False
    return (now or utc_now()) > as_utc(promotion.end_date)


def is_active_now(promotion: Promotion, now: Optional[datetime] = None) -> bool:
    """Switched on and inside its start/end window."""
    if not promotion.is_active:
        return False
    now = now or utc_now()
    if promotion.start_date is not None and now < as_utc(promotion.start_date):
        return False
    return not is_expired(promotion, now)


def to_response(promotion: Promotion, now: Optional[datetime] = None) -> PromotionResponse:
    now = now or utc_now()
    return PromotionResponse.from_promotion(
        promotion,
        is_expired=is_expired(promotion, now),
        is_active_now=is_active_now(promotion, now),
    )


def _not_ended(now: datetime):
    return or_(Promotion.end_date.is_(None), Promotion.end_date >= now)


def _ordered(query):
    return query.order_by(Promotion.display_order, Promotion.created_at.desc())


async def list_active(
    db: AsyncSession,
    type: Optional[PromotionType] = None,
    now: Optional[datetime] = None,
) -> list[Promotion]:
    """Active promotions whose window contains ``now``."""
    now = now or utc_now()
    query = select(Promotion).where(
        Promotion.is_active.is_(True),
        _not_ended(now),
        or_(Promotion.start_date.is_(None), Promotion.start_date <= now),
    )
    if type:
        query = query.where(Promotion.type == type)
    result = await db.execute(_ordered(query))
    return list(result.scalars().all())


async def list_featured(
    db: AsyncSession,
    type: Optional[PromotionType] = None,
    now: Optional[datetime] = None,
    limit: int = FEATURED_LIMIT,
) -> list[Promotion]:
    """Featured, active, not yet ended promotions.

    Scheduled ones (start date in the future) are included so the storefront
    can tease them.
    """
    now = now or utc_now()
    query = select(Promotion).where(
        Promotion.is_active.is_(True),
        Promotion.is_featured.is_(True),
        _not_ended(now),
    )
    if type:
        query = query.where(Promotion.type == type)
    result = await db.execute(_ordered(query).limit(limit))
    return list(result.scalars().all())


async def get_promotion(db: AsyncSession, promotion_id: uuid.UUID) -> Promotion:
    promotion = await db.get(Promotion, promotion_id)
    if not promotion:
        raise NotFound("Promotion not found")
    return promotion
