"""Public product router: browse, search, detail and related products."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.commerce_service.routers._helpers import product_page
from services.commerce_service.schemas import (
    ProductDetail,
    ProductFilters,
    ProductListResponse,
    ProductResponse,
)
from services.commerce_service.services import catalog
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["products"])


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    category: Optional[str] = Query(None, description="Category slug (includes subcategories)"),
    brand: Optional[str] = Query(None, description="Brand slug"),
    search: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    featured: Optional[bool] = None,
    in_stock: Optional[bool] = None,
    sort: str = Query("newest", pattern="^(newest|price_asc|price_desc|rating|popular|name)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """Browse products with filtering, sorting and pagination."""
    products, total = await catalog.list_products(
        db,
        category_slug=category,
        brand_slug=brand,
        search=search,
        min_price=min_price,
        max_price=max_price,
        featured=featured,
        in_stock=in_stock,
        sort=sort,
        page=page,
        page_size=page_size,
    )
    return product_page(products, total, page, page_size)


@router.get("/products/featured", response_model=list[ProductResponse])
async def list_featured_products(
    limit: int = Query(8, ge=1, le=50),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.featured_products(db, limit=limit)


@router.get("/products/filters", response_model=ProductFilters)
async def get_product_filters(
    category: Optional[str] = Query(None, description="Category slug (includes subcategories)"),
    brand: Optional[str] = Query(None, description="Brand slug"),
    db: AsyncSession = Depends(get_async_db),
):
    """Price range and brand/category counts for the given filter set."""
    return await catalog.product_filters(db, category_slug=category, brand_slug=brand)


@router.get("/products/{slug}", response_model=ProductDetail)
async def get_product(
    slug: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Get product detail by slug, with reviews."""
    return await catalog.get_product_by_slug(db, slug)


@router.get("/products/{product_id}/related", response_model=list[ProductResponse])
async def list_related_products(
    product_id: uuid.UUID,
    limit: int = Query(4, ge=1, le=20),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.related_products(db, product_id, limit=limit)
