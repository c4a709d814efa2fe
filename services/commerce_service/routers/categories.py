"""Public category router: listings, tree, breadcrumbs and category products."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.commerce_service.routers._helpers import product_page
from services.commerce_service.schemas import (
    CategoryPathEntry,
    CategoryResponse,
    CategoryTreeNode,
    ProductListResponse,
)
from services.commerce_service.services import catalog, hierarchy
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["categories"])


# ============================================================================
# LISTINGS
# ============================================================================


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_async_db),
):
    """List all active categories."""
    return await hierarchy.list_categories(db)


@router.get("/categories/tree", response_model=list[CategoryTreeNode])
async def get_category_tree(
    db: AsyncSession = Depends(get_async_db),
):
    """Flat category tree; each node says whether it has children."""
    return await hierarchy.build_tree(db)


@router.get("/categories/roots", response_model=list[CategoryResponse])
async def list_root_categories(
    db: AsyncSession = Depends(get_async_db),
):
    return await hierarchy.find_roots(db)


@router.get("/categories/featured", response_model=list[CategoryResponse])
async def list_featured_categories(
    db: AsyncSession = Depends(get_async_db),
):
    return await hierarchy.find_featured(db)


@router.get("/categories/level/{level}", response_model=list[CategoryResponse])
async def list_categories_at_level(
    level: int,
    db: AsyncSession = Depends(get_async_db),
):
    """Active categories at an exact depth (0 = roots)."""
    return await hierarchy.find_by_level(db, level)


# ============================================================================
# SINGLE CATEGORY
# ============================================================================


@router.get("/categories/{slug}", response_model=CategoryResponse)
async def get_category(
    slug: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Get category by slug."""
    return await hierarchy.get_by_slug(db, slug)


@router.get("/categories/{slug}/path", response_model=list[CategoryPathEntry])
async def get_category_path(
    slug: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Breadcrumb from the root down to this category."""
    category = await hierarchy.get_by_slug(db, slug)
    return await hierarchy.find_path(db, category.id)


@router.get("/categories/{slug}/subcategories", response_model=list[CategoryResponse])
async def list_subcategories(
    slug: str,
    db: AsyncSession = Depends(get_async_db),
):
    return await hierarchy.list_subcategories(db, slug)


@router.get("/categories/{slug}/products", response_model=ProductListResponse)
async def list_category_products(
    slug: str,
    sort: str = "newest",
    in_stock: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """Published products in this category or any category below it."""
    products, total = await catalog.list_products(
        db,
        category_slug=slug,
        in_stock=in_stock,
        sort=sort,
        page=page,
        page_size=page_size,
    )
    return product_page(products, total, page, page_size)
