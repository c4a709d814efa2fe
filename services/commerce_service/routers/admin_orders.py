"""Admin orders router: order management, status lifecycle and stats."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import admin_limit
from services.commerce_service.models import OrderStatus
from services.commerce_service.routers._helpers import get_fulfillment, order_page
from services.commerce_service.schemas import (
    DashboardResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatsEntry,
    OrderStatusUpdate,
    TrackingUpdate,
)
from services.commerce_service.services.fulfillment import OrderFulfillment

router = APIRouter(tags=["admin-orders"])


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Order number or shipping city"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """List all orders with optional filters."""
    orders, total = await engine.list_orders(
        status=status_filter, search=search, page=page, page_size=page_size
    )
    return order_page(orders, total, page, page_size)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """Store totals, recent orders, low stock and top-rated products."""
    return await engine.dashboard()


@router.get("/orders/stats", response_model=list[OrderStatsEntry])
async def get_order_stats(
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """Order count and revenue per status."""
    return await engine.order_stats()


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    order = await engine.load_order(order_id)
    return OrderResponse.from_order(order)


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
@admin_limit
async def update_order_status(
    request: Request,
    order_id: uuid.UUID,
    status_in: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    order = await engine.update_status(
        order_id, status_in.status, current_user.user_id, notes=status_in.notes
    )
    return OrderResponse.from_order(order)


@router.put("/orders/{order_id}/tracking", response_model=OrderResponse)
@admin_limit
async def add_order_tracking(
    request: Request,
    order_id: uuid.UUID,
    tracking_in: TrackingUpdate,
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """Attach tracking details; the order moves to shipped."""
    order = await engine.add_tracking(
        order_id,
        tracking_in.tracking_number,
        current_user.user_id,
        estimated_delivery=tracking_in.estimated_delivery,
    )
    return OrderResponse.from_order(order)


@router.put("/orders/{order_id}/deliver", response_model=OrderResponse)
@admin_limit
async def mark_order_delivered(
    request: Request,
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    order = await engine.mark_delivered(order_id, current_user.user_id)
    return OrderResponse.from_order(order)
