"""Shared dependencies and response builders for commerce routers."""

import math

from fastapi import Depends
from libs.db.session import get_async_db
from services.commerce_service.models import Order, Product
from services.commerce_service.schemas import (
    OrderListResponse,
    OrderResponse,
    ProductListResponse,
    ProductResponse,
)
from services.commerce_service.services.fulfillment import (
    FulfillmentConfig,
    OrderFulfillment,
)
from sqlalchemy.ext.asyncio import AsyncSession


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


def get_fulfillment_config() -> FulfillmentConfig:
    return FulfillmentConfig.from_settings()


async def get_fulfillment(
    db: AsyncSession = Depends(get_async_db),
    config: FulfillmentConfig = Depends(get_fulfillment_config),
) -> OrderFulfillment:
    """Order engine bound to the request's session."""
    return OrderFulfillment(db, config)


def product_page(
    products: list[Product], total: int, page: int, page_size: int
) -> ProductListResponse:
    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


def order_page(
    orders: list[Order], total: int, page: int, page_size: int
) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.from_order(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )
