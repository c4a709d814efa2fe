"""Public brand router."""

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.commerce_service.routers._helpers import product_page
from services.commerce_service.schemas import BrandResponse, ProductListResponse
from services.commerce_service.services import catalog
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["brands"])


@router.get("/brands", response_model=list[BrandResponse])
async def list_brands(
    db: AsyncSession = Depends(get_async_db),
):
    """List all active brands."""
    return await catalog.list_brands(db)


@router.get("/brands/featured", response_model=list[BrandResponse])
async def list_featured_brands(
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.list_brands(db, featured_only=True)


@router.get("/brands/{slug}", response_model=BrandResponse)
async def get_brand(
    slug: str,
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog.get_brand_by_slug(db, slug)


@router.get("/brands/{slug}/products", response_model=ProductListResponse)
async def list_brand_products(
    slug: str,
    sort: str = "newest",
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """Published products of one brand."""
    await catalog.get_brand_by_slug(db, slug)
    products, total = await catalog.list_products(
        db, brand_slug=slug, sort=sort, page=page, page_size=page_size
    )
    return product_page(products, total, page, page_size)
