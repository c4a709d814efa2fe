"""Enum definitions for commerce service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class ProductStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


CANCELLABLE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}
)
REFUNDABLE_STATUSES = frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED})


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"
    # Reorders are created before the customer picks a method
    PENDING = "pending"


class ShippingMethod(str, enum.Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    PICKUP = "pickup"


class AdjustmentType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class AddressType(str, enum.Enum):
    HOME = "home"
    WORK = "work"
    OTHER = "other"


class OrderSource(str, enum.Enum):
    WEB = "web"
    MOBILE = "mobile"
    PHONE = "phone"
    IN_STORE = "in_store"


class AuditEntityType(str, enum.Enum):
    PRODUCT = "product"
    BRAND = "brand"
    CATEGORY = "category"
    INVENTORY = "inventory"
    ORDER = "order"


class PromotionType(str, enum.Enum):
    BANNER = "banner"
    CARD = "card"
