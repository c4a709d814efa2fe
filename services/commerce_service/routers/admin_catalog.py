"""Admin catalog router: categories, products, stock and brands."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import admin_limit
from libs.db.session import get_async_db
from services.commerce_service.models import Brand, ProductStatus
from services.commerce_service.routers._helpers import product_page
from services.commerce_service.schemas import (
    BrandCreate,
    BrandResponse,
    BrandUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductDetail,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    StockAdjustment,
)
from services.commerce_service.services import catalog, hierarchy
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-catalog"])


# ============================================================================
# CATEGORIES
# ============================================================================


@router.get("/categories", response_model=list[CategoryResponse])
async def list_all_categories(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all categories (including inactive)."""
    return await hierarchy.list_categories(db, active_only=False)


@router.post(
    "/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED
)
async def create_category(
    category_in: CategoryCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a category; level and ancestors follow from the parent."""
    return await hierarchy.create_category(db, category_in, current_user.user_id)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    category_in: CategoryUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a category. Changing ``parent_id`` moves its whole subtree."""
    return await hierarchy.update_category(
        db, category_id, category_in, current_user.user_id
    )


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=ProductListResponse)
async def list_all_products(
    status_filter: Optional[ProductStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all products regardless of status."""
    products, total = await catalog.list_all_products(
        db, status=status_filter, search=search, page=page, page_size=page_size
    )
    return product_page(products, total, page, page_size)


@router.get("/products/low-stock", response_model=list[ProductResponse])
async def list_low_stock_products(
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.list_low_stock(db, limit=limit)


@router.get("/products/{product_id}", response_model=ProductDetail)
async def get_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.get_product(db, product_id)


@router.post(
    "/products", response_model=ProductDetail, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.create_product(db, product_in, current_user.user_id)


@router.patch("/products/{product_id}", response_model=ProductDetail)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a product. Sending ``images`` replaces the whole image set."""
    return await catalog.update_product(db, product_id, product_in, current_user.user_id)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Archive a product (soft delete, past orders keep their snapshot)."""
    await catalog.archive_product(db, product_id, current_user.user_id)


@router.post("/products/{product_id}/stock", response_model=ProductDetail)
@admin_limit
async def adjust_stock(
    request: Request,
    product_id: uuid.UUID,
    adjustment: StockAdjustment,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Restock (positive) or correct (negative) the on-hand quantity."""
    return await catalog.adjust_product_stock(
        db,
        product_id,
        adjustment.quantity,
        current_user.user_id,
        notes=adjustment.notes,
    )


# ============================================================================
# BRANDS
# ============================================================================


@router.get("/brands", response_model=list[BrandResponse])
async def list_all_brands(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all brands (including inactive)."""
    result = await db.execute(select(Brand).order_by(Brand.sort_order, Brand.name))
    return result.scalars().all()


@router.post("/brands", response_model=BrandResponse, status_code=status.HTTP_201_CREATED)
async def create_brand(
    brand_in: BrandCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.create_brand(db, brand_in, current_user.user_id)


@router.patch("/brands/{brand_id}", response_model=BrandResponse)
async def update_brand(
    brand_id: uuid.UUID,
    brand_in: BrandUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.update_brand(db, brand_id, brand_in, current_user.user_id)
