"""Catalog reads and maintenance: products, brands, images, reviews, stock."""

import uuid
from typing import Optional

from libs.common.errors import InvalidInput, NotFound, StateConflict
from libs.common.logging import get_logger
from libs.common.slug import slugify
from services.commerce_service.models import (
    AuditEntityType,
    Brand,
    Category,
    Product,
    ProductImage,
    ProductStatus,
    Review,
    empty_distribution,
)
from services.commerce_service.schemas import (
    BrandCreate,
    BrandUpdate,
    PriceRange,
    ProductCreate,
    ProductFilters,
    ProductImageIn,
    ProductUpdate,
    ReviewCreate,
)
from services.commerce_service.services import hierarchy
from services.commerce_service.services.audit import log_audit
from services.commerce_service.services.inventory import adjust_stock
from services.commerce_service.services.pricing import to_money
from sqlalchemy import distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

SORT_OPTIONS = {
    "newest": (Product.created_at.desc(),),
    "price_asc": (Product.price_current.asc(),),
    "price_desc": (Product.price_current.desc(),),
    "rating": (Product.rating_average.desc(), Product.rating_count.desc()),
    "popular": (Product.rating_count.desc(),),
    "name": (Product.name.asc(),),
}


def _published():
    return select(Product).where(
        Product.is_active.is_(True), Product.status == ProductStatus.PUBLISHED
    )


async def _scoped(
    db: AsyncSession,
    query,
    category_slug: Optional[str],
    brand_slug: Optional[str],
):
    """Narrow ``query`` to a category subtree and/or a brand."""
    if category_slug:
        category = await hierarchy.get_by_slug(db, category_slug)
        query = query.where(
            Product.category_id.in_(await hierarchy.subtree_ids(db, category))
        )
    if brand_slug:
        query = query.where(
            Product.brand_id.in_(select(Brand.id).where(Brand.slug == brand_slug))
        )
    return query


# ============================================================================
# DERIVED PRODUCT STATE
# ============================================================================


def normalize_primary_image(product: Product) -> None:
    """Leave exactly one primary image: the first flagged one, else the first."""
    images = list(product.images)
    if not images:
        return
    primary = next((image for image in images if image.is_primary), images[0])
    for image in images:
        image.is_primary = image is primary


def recalculate_ratings(product: Product) -> None:
    """Rebuild average, count and per-star distribution from the reviews."""
    reviews = list(product.reviews)
    distribution = empty_distribution()
    for review in reviews:
        distribution[str(review.rating)] += 1

    product.rating_count = len(reviews)
    product.rating_distribution = distribution
    if reviews:
        product.rating_average = round(
            sum(review.rating for review in reviews) / len(reviews), 2
        )
    else:
        product.rating_average = 0.0


# ============================================================================
# PRODUCT READS
# ============================================================================


async def list_products(
    db: AsyncSession,
    *,
    category_slug: Optional[str] = None,
    brand_slug: Optional[str] = None,
    search: Optional[str] = None,
    min_price=None,
    max_price=None,
    featured: Optional[bool] = None,
    in_stock: Optional[bool] = None,
    sort: str = "newest",
    page: int = 1,
    page_size: int = 12,
) -> tuple[list[Product], int]:
    """Published products matching the filters, plus the unpaginated count.

    A category filter covers the category and its whole subtree.
    """
    query = await _scoped(db, _published(), category_slug, brand_slug)
    if search:
        term = f"%{search}%"
        query = query.where(
            or_(Product.name.ilike(term), Product.description.ilike(term))
        )
    if min_price is not None:
        query = query.where(Product.price_current >= min_price)
    if max_price is not None:
        query = query.where(Product.price_current <= max_price)
    if featured is not None:
        query = query.where(Product.is_featured == featured)
    if in_stock:
        query = query.where(Product.is_in_stock.is_(True))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    order_by = SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"])
    result = await db.execute(
        query.options(selectinload(Product.images))
        .order_by(*order_by, Product.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total or 0


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(
            selectinload(Product.images),
            selectinload(Product.reviews),
            selectinload(Product.brand),
            selectinload(Product.category),
        )
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


async def get_product_by_slug(db: AsyncSession, slug: str) -> Product:
    result = await db.execute(
        _published()
        .where(Product.slug == slug)
        .options(
            selectinload(Product.images),
            selectinload(Product.reviews),
            selectinload(Product.brand),
            selectinload(Product.category),
        )
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


async def related_products(
    db: AsyncSession, product_id: uuid.UUID, limit: int = 4
) -> list[Product]:
    """Published products sharing the category or brand, excluding the product."""
    product = await db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    links = []
    if product.category_id:
        links.append(Product.category_id == product.category_id)
    if product.brand_id:
        links.append(Product.brand_id == product.brand_id)
    if not links:
        return []

    result = await db.execute(
        _published()
        .where(Product.id != product.id, or_(*links))
        .options(selectinload(Product.images))
        .order_by(Product.rating_average.desc(), Product.name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def featured_products(db: AsyncSession, limit: int = 8) -> list[Product]:
    result = await db.execute(
        _published()
        .where(Product.is_featured.is_(True))
        .options(selectinload(Product.images))
        .order_by(Product.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def top_rated_products(db: AsyncSession, limit: int = 10) -> list[Product]:
    result = await db.execute(
        _published()
        .options(selectinload(Product.images))
        .order_by(Product.rating_average.desc(), Product.rating_count.desc(), Product.name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def product_filters(
    db: AsyncSession,
    *,
    category_slug: Optional[str] = None,
    brand_slug: Optional[str] = None,
) -> ProductFilters:
    """Price range and distinct brand/category counts of published products."""
    scope = (await _scoped(db, _published(), category_slug, brand_slug)).subquery()
    low, high, brands, categories = (
        await db.execute(
            select(
                func.min(scope.c.price_current),
                func.max(scope.c.price_current),
                func.count(distinct(scope.c.brand_id)),
                func.count(distinct(scope.c.category_id)),
            )
        )
    ).one()
    return ProductFilters(
        price_range=PriceRange(
            min_price=to_money(low if low is not None else 0),
            max_price=to_money(high if high is not None else 0),
        ),
        brands=brands,
        categories=categories,
    )


async def count_products(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(Product.id))) or 0


async def list_low_stock(db: AsyncSession, limit: int = 20) -> list[Product]:
    """Active products at or below their low-stock threshold (admin)."""
    result = await db.execute(
        select(Product)
        .where(
            Product.is_active.is_(True),
            Product.stock <= Product.low_stock_threshold,
        )
        .options(selectinload(Product.images))
        .order_by(Product.stock, Product.name)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_all_products(
    db: AsyncSession,
    *,
    status: Optional[ProductStatus] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Product], int]:
    """Every product regardless of status (admin)."""
    query = select(Product)
    if status:
        query = query.where(Product.status == status)
    if search:
        term = f"%{search}%"
        query = query.where(or_(Product.name.ilike(term), Product.sku.ilike(term)))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.options(selectinload(Product.images))
        .order_by(Product.created_at.desc(), Product.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total or 0


# ============================================================================
# PRODUCT WRITES (admin)
# ============================================================================


async def _ensure_unique(db: AsyncSession, column, value, exclude_id=None) -> None:
    query = select(column.class_.id).where(column == value)
    if exclude_id:
        query = query.where(column.class_.id != exclude_id)
    if await db.scalar(query):
        raise StateConflict(f"{column.key} '{value}' already exists")


async def _check_references(
    db: AsyncSession,
    brand_id: Optional[uuid.UUID],
    category_id: Optional[uuid.UUID],
) -> None:
    if brand_id and not await db.get(Brand, brand_id):
        raise NotFound("Brand not found")
    if category_id and not await db.get(Category, category_id):
        raise NotFound("Category not found")


def _build_images(images: list[ProductImageIn]) -> list[ProductImage]:
    return [ProductImage(**image.model_dump()) for image in images]


async def create_product(
    db: AsyncSession, data: ProductCreate, performed_by: str
) -> Product:
    slug = data.slug or slugify(data.name)
    if not slug:
        raise InvalidInput("Product name must contain letters or digits")
    await _ensure_unique(db, Product.slug, slug)
    if data.sku:
        await _ensure_unique(db, Product.sku, data.sku)
    await _check_references(db, data.brand_id, data.category_id)

    product = Product(
        **data.model_dump(exclude={"slug", "images"}),
        slug=slug,
        is_in_stock=data.stock > 0,
        rating_distribution=empty_distribution(),
        images=_build_images(data.images),
        reviews=[],
        created_by=performed_by,
    )
    normalize_primary_image(product)
    db.add(product)
    await db.flush()

    log_audit(
        db,
        entity_type=AuditEntityType.PRODUCT,
        entity_id=product.id,
        action="created",
        performed_by=performed_by,
        new_value={"name": product.name, "slug": slug, "stock": product.stock},
    )
    await db.commit()
    logger.info("Product %s created by %s", slug, performed_by)
    return await get_product(db, product.id)


async def update_product(
    db: AsyncSession,
    product_id: uuid.UUID,
    data: ProductUpdate,
    performed_by: str,
) -> Product:
    product = await get_product(db, product_id)
    updates = data.model_dump(exclude_unset=True)

    if updates.get("slug"):
        await _ensure_unique(db, Product.slug, updates["slug"], exclude_id=product.id)
    elif "slug" in updates:
        updates.pop("slug")
    if updates.get("sku"):
        await _ensure_unique(db, Product.sku, updates["sku"], exclude_id=product.id)
    await _check_references(db, updates.get("brand_id"), updates.get("category_id"))

    old_value = {
        "price_current": str(product.price_current),
        "status": product.status.value,
    }
    images = updates.pop("images", None)
    for field, value in updates.items():
        setattr(product, field, value)
    if images is not None:
        product.images = _build_images(data.images)
    normalize_primary_image(product)

    log_audit(
        db,
        entity_type=AuditEntityType.PRODUCT,
        entity_id=product.id,
        action="updated",
        performed_by=performed_by,
        old_value=old_value,
        new_value={
            "price_current": str(product.price_current),
            "status": product.status.value,
        },
    )
    await db.commit()
    return await get_product(db, product.id)


async def archive_product(
    db: AsyncSession, product_id: uuid.UUID, performed_by: str
) -> Product:
    """Hide a product from the storefront; orders keep referencing it."""
    product = await get_product(db, product_id)
    old_status = product.status
    product.status = ProductStatus.ARCHIVED
    product.is_active = False

    log_audit(
        db,
        entity_type=AuditEntityType.PRODUCT,
        entity_id=product.id,
        action="archived",
        performed_by=performed_by,
        old_value={"status": old_status.value},
        new_value={"status": ProductStatus.ARCHIVED.value},
    )
    await db.commit()
    return product


async def adjust_product_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    delta: int,
    performed_by: str,
    notes: Optional[str] = None,
) -> Product:
    """Apply a signed stock change atomically; refuses to go below zero."""
    product = await db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    if not await adjust_stock(db, product_id, delta):
        await db.rollback()
        raise InvalidInput(
            "Stock cannot go below zero",
            details={"product_id": str(product_id), "delta": delta},
        )

    log_audit(
        db,
        entity_type=AuditEntityType.INVENTORY,
        entity_id=product_id,
        action="stock_adjusted",
        performed_by=performed_by,
        new_value={"delta": delta},
        notes=notes,
    )
    await db.commit()
    return await get_product(db, product_id)


# ============================================================================
# BRANDS
# ============================================================================


async def list_brands(db: AsyncSession, featured_only: bool = False) -> list[Brand]:
    query = select(Brand).where(Brand.is_active.is_(True))
    if featured_only:
        query = query.where(Brand.is_featured.is_(True))
    result = await db.execute(query.order_by(Brand.sort_order, Brand.name))
    return list(result.scalars().all())


async def get_brand_by_slug(db: AsyncSession, slug: str) -> Brand:
    brand = await db.scalar(
        select(Brand).where(Brand.slug == slug, Brand.is_active.is_(True))
    )
    if not brand:
        raise NotFound("Brand not found")
    return brand


async def create_brand(db: AsyncSession, data: BrandCreate, performed_by: str) -> Brand:
    slug = data.slug or slugify(data.name)
    if not slug:
        raise InvalidInput("Brand name must contain letters or digits")
    await _ensure_unique(db, Brand.slug, slug)

    brand = Brand(**data.model_dump(exclude={"slug"}), slug=slug)
    db.add(brand)
    await db.flush()
    log_audit(
        db,
        entity_type=AuditEntityType.BRAND,
        entity_id=brand.id,
        action="created",
        performed_by=performed_by,
        new_value={"name": brand.name, "slug": slug},
    )
    await db.commit()
    return brand


async def update_brand(
    db: AsyncSession, brand_id: uuid.UUID, data: BrandUpdate, performed_by: str
) -> Brand:
    brand = await db.get(Brand, brand_id)
    if not brand:
        raise NotFound("Brand not found")

    updates = data.model_dump(exclude_unset=True)
    if updates.get("slug"):
        await _ensure_unique(db, Brand.slug, updates["slug"], exclude_id=brand.id)
    elif "slug" in updates:
        updates.pop("slug")
    for field, value in updates.items():
        setattr(brand, field, value)

    log_audit(
        db,
        entity_type=AuditEntityType.BRAND,
        entity_id=brand.id,
        action="updated",
        performed_by=performed_by,
        new_value={k: str(v) for k, v in updates.items()},
    )
    await db.commit()
    return brand


# ============================================================================
# REVIEWS
# ============================================================================


async def _find_review(
    db: AsyncSession, product_id: uuid.UUID, user_id: str
) -> Optional[Review]:
    return await db.scalar(
        select(Review).where(Review.product_id == product_id, Review.user_id == user_id)
    )


async def add_review(
    db: AsyncSession,
    product_id: uuid.UUID,
    user_id: str,
    data: ReviewCreate,
    user_name: Optional[str] = None,
) -> Review:
    """One review per user per product; a second attempt is a StateConflict."""
    product = await get_product(db, product_id)
    if await _find_review(db, product_id, user_id):
        raise StateConflict("You have already reviewed this product")

    review = Review(user_id=user_id, user_name=user_name, **data.model_dump())
    product.reviews.append(review)
    recalculate_ratings(product)
    await db.commit()
    return review


async def update_review(
    db: AsyncSession, product_id: uuid.UUID, user_id: str, data: ReviewCreate
) -> Review:
    product = await get_product(db, product_id)
    review = next((r for r in product.reviews if r.user_id == user_id), None)
    if not review:
        raise NotFound("Review not found")

    for field, value in data.model_dump().items():
        setattr(review, field, value)
    recalculate_ratings(product)
    await db.commit()
    return review


async def delete_review(db: AsyncSession, product_id: uuid.UUID, user_id: str) -> None:
    product = await get_product(db, product_id)
    review = next((r for r in product.reviews if r.user_id == user_id), None)
    if not review:
        raise NotFound("Review not found")

    product.reviews.remove(review)
    recalculate_ratings(product)
    await db.commit()


async def list_user_reviews(db: AsyncSession, user_id: str) -> list[tuple[Review, Product]]:
    result = await db.execute(
        select(Review, Product)
        .join(Product, Review.product_id == Product.id)
        .where(Review.user_id == user_id)
        .order_by(Review.created_at.desc())
    )
    return [(review, product) for review, product in result.all()]

