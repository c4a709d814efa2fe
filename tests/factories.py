"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    product = ProductFactory.create(stock=3)
    db_session.add(product)
    await db_session.commit()
"""

import uuid
from datetime import timedelta
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _unique_slug(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class CategoryFactory:
    @staticmethod
    def create(parent=None, **overrides):
        """Build a category; hierarchy fields follow ``parent`` when given."""
        from services.commerce_service.models import Category
        from services.commerce_service.services.hierarchy import apply_parent

        slug = overrides.pop("slug", None) or _unique_slug("category")
        defaults = {
            "id": _uuid(),
            "name": slug.replace("-", " ").title(),
            "slug": slug,
            "is_active": True,
            "is_featured": False,
            "sort_order": 0,
            "parent_id": parent.id if parent else None,
        }
        defaults.update(overrides)
        category = Category(**defaults)
        apply_parent(category, parent)
        return category


class BrandFactory:
    @staticmethod
    def create(**overrides):
        from services.commerce_service.models import Brand

        slug = overrides.pop("slug", None) or _unique_slug("brand")
        defaults = {
            "id": _uuid(),
            "name": slug.replace("-", " ").title(),
            "slug": slug,
            "is_active": True,
            "is_featured": False,
        }
        defaults.update(overrides)
        return Brand(**defaults)


class ProductFactory:
    @staticmethod
    def create(**overrides):
        """Published, active, in-stock product unless overridden."""
        from services.commerce_service.models import (
            Product,
            ProductStatus,
            empty_distribution,
        )

        slug = overrides.pop("slug", None) or _unique_slug("product")
        defaults = {
            "id": _uuid(),
            "name": slug.replace("-", " ").title(),
            "slug": slug,
            "price_current": Decimal("10.00"),
            "stock": 10,
            "status": ProductStatus.PUBLISHED,
            "is_active": True,
            "is_featured": False,
            "tags": [],
            "rating_distribution": empty_distribution(),
        }
        defaults.update(overrides)
        defaults.setdefault("is_in_stock", defaults["stock"] > 0)
        return Product(**defaults)


class ProductImageFactory:
    @staticmethod
    def create(**overrides):
        from services.commerce_service.models import ProductImage

        defaults = {
            "id": _uuid(),
            "url": f"https://cdn.example.com/{uuid.uuid4().hex[:8]}.jpg",
            "sort_order": 0,
            "is_primary": False,
        }
        defaults.update(overrides)
        return ProductImage(**defaults)


class ReviewFactory:
    @staticmethod
    def create(product_id=None, **overrides):
        from services.commerce_service.models import Review

        defaults = {
            "id": _uuid(),
            "product_id": product_id or _uuid(),
            "user_id": f"user-{uuid.uuid4().hex[:8]}",
            "rating": 5,
        }
        defaults.update(overrides)
        return Review(**defaults)


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------


class PromotionFactory:
    @staticmethod
    def create(**overrides):
        """Active card promotion with an open-ended window unless overridden."""
        from libs.common.datetime_utils import utc_now
        from services.commerce_service.models import Promotion, PromotionType

        defaults = {
            "id": _uuid(),
            "title": f"Promotion {uuid.uuid4().hex[:6]}",
            "type": PromotionType.CARD,
            "is_active": True,
            "is_featured": False,
            "display_order": 0,
            "start_date": utc_now() - timedelta(days=1),
            "end_date": None,
        }
        defaults.update(overrides)
        return Promotion(**defaults)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def shipping_address(**overrides):
    from services.commerce_service.schemas import ShippingAddress

    defaults = {
        "street": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
    }
    defaults.update(overrides)
    return ShippingAddress(**defaults)


def order_item(product, quantity: int = 1):
    from services.commerce_service.schemas import OrderItemRequest

    return OrderItemRequest(product_id=product.id, quantity=quantity)
