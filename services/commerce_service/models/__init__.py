"""Commerce service models package."""

from services.commerce_service.models.catalog import (
    RATING_STARS,
    Brand,
    Category,
    Product,
    ProductImage,
    Review,
    empty_distribution,
)
from services.commerce_service.models.commerce import Order, OrderItem, StoreAuditLog
from services.commerce_service.models.enums import (
    CANCELLABLE_STATUSES,
    REFUNDABLE_STATUSES,
    AddressType,
    AdjustmentType,
    AuditEntityType,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductStatus,
    PromotionType,
    ShippingMethod,
)
from services.commerce_service.models.promotion import Promotion

__all__ = [
    "AddressType",
    "AdjustmentType",
    "AuditEntityType",
    "Brand",
    "CANCELLABLE_STATUSES",
    "Category",
    "Order",
    "OrderItem",
    "OrderSource",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "ProductImage",
    "ProductStatus",
    "Promotion",
    "PromotionType",
    "RATING_STARS",
    "REFUNDABLE_STATUSES",
    "Review",
    "ShippingMethod",
    "StoreAuditLog",
    "empty_distribution",
]
