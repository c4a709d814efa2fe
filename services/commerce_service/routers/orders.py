"""Customer orders router: checkout, order history, tracking, cancel, reorder."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import checkout_limit
from services.commerce_service.models import OrderStatus
from services.commerce_service.routers._helpers import get_fulfillment, order_page
from services.commerce_service.schemas import (
    CancelRequest,
    InvoiceResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    TrackingResponse,
)
from services.commerce_service.services.fulfillment import OrderFulfillment

router = APIRouter(tags=["orders"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@checkout_limit
async def place_order(
    request: Request,
    order_in: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """Create an order from the submitted cart, taking stock for every line."""
    order = await engine.place_order(
        current_user.user_id,
        order_in.items,
        shipping_method=order_in.shipping_method,
        payment_method=order_in.payment_method,
        shipping_address=order_in.shipping_address,
        notes=order_in.notes,
        is_gift=order_in.is_gift,
        gift_message=order_in.gift_message,
        source=order_in.source,
    )
    return OrderResponse.from_order(order)


@router.post(
    "/orders/{order_id}/reorder",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
)
@checkout_limit
async def reorder(
    request: Request,
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """Re-place a past order with whatever is still available."""
    order = await engine.reorder(order_id, current_user.user_id)
    return OrderResponse.from_order(order)


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """List the caller's orders, newest first."""
    orders, total = await engine.list_orders_for_user(
        current_user.user_id, status=status_filter, page=page, page_size=page_size
    )
    return order_page(orders, total, page, page_size)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    order = await engine.get_order(order_id, current_user.user_id)
    return OrderResponse.from_order(order)


@router.get("/orders/{order_id}/tracking", response_model=TrackingResponse)
async def get_order_tracking(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    return await engine.get_tracking(order_id, current_user.user_id)


@router.get("/orders/{order_id}/invoice", response_model=InvoiceResponse)
async def get_order_invoice(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    return await engine.build_invoice(order_id, current_user.user_id)


@router.put("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    cancel_in: Optional[CancelRequest] = None,
    current_user: AuthUser = Depends(get_current_user),
    engine: OrderFulfillment = Depends(get_fulfillment),
):
    """Cancel an order that has not shipped yet."""
    order = await engine.cancel_order(
        order_id, current_user.user_id, reason=cancel_in.reason if cancel_in else None
    )
    return OrderResponse.from_order(order)
