"""Pydantic schemas for the commerce service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.commerce_service.models import (
    AddressType,
    AdjustmentType,
    Order,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductStatus,
    Promotion,
    PromotionType,
    ShippingMethod,
)

HEX_COLOR = r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"

# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryBase(BaseModel):
    name: str = Field(..., max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    short_description: Optional[str] = Field(None, max_length=300)
    image_url: Optional[str] = Field(None, max_length=512)
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    parent_id: Optional[uuid.UUID] = None
    is_active: bool = True
    is_featured: bool = False
    sort_order: int = 0


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = Field(None, max_length=1000)
    short_description: Optional[str] = Field(None, max_length=300)
    image_url: Optional[str] = Field(None, max_length=512)
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    parent_id: Optional[uuid.UUID] = None  # explicit null moves the category to the root
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None


class CategoryResponse(CategoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    ancestors: list[uuid.UUID] = []
    level: int
    created_at: datetime
    updated_at: datetime


class CategoryTreeNode(CategoryResponse):
    has_children: bool = False


class CategoryPathEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    level: int


# ============================================================================
# BRAND SCHEMAS
# ============================================================================


class BrandBase(BaseModel):
    name: str = Field(..., max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=512)
    website: Optional[str] = Field(None, max_length=255)
    is_active: bool = True
    is_featured: bool = False
    sort_order: int = 0


class BrandCreate(BrandBase):
    pass


class BrandUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    slug: Optional[str] = Field(None, max_length=120)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=512)
    website: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    sort_order: Optional[int] = None


class BrandResponse(BrandBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductImageIn(BaseModel):
    url: str = Field(..., max_length=512)
    alt_text: Optional[str] = Field(None, max_length=255)
    sort_order: int = 0
    is_primary: bool = False


class ProductImageResponse(ProductImageIn):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID


class ProductBase(BaseModel):
    name: str = Field(..., max_length=200)
    slug: Optional[str] = Field(None, max_length=220)
    description: Optional[str] = Field(None, max_length=2000)
    short_description: Optional[str] = Field(None, max_length=500)
    sku: Optional[str] = Field(None, max_length=100)
    brand_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    price_current: Decimal = Field(..., ge=0)
    price_original: Optional[Decimal] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    low_stock_threshold: int = Field(5, ge=0)
    status: ProductStatus = ProductStatus.DRAFT
    is_active: bool = True
    is_featured: bool = False
    tags: list[str] = []


class ProductCreate(ProductBase):
    images: list[ProductImageIn] = []


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    slug: Optional[str] = Field(None, max_length=220)
    description: Optional[str] = Field(None, max_length=2000)
    short_description: Optional[str] = Field(None, max_length=500)
    sku: Optional[str] = Field(None, max_length=100)
    brand_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    price_current: Optional[Decimal] = Field(None, ge=0)
    price_original: Optional[Decimal] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    status: Optional[ProductStatus] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    tags: Optional[list[str]] = None
    images: Optional[list[ProductImageIn]] = None  # replaces the image set


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    is_in_stock: bool
    is_on_sale: bool
    discount_percentage: int
    primary_image_url: Optional[str] = None
    rating_average: float
    rating_count: int
    rating_distribution: dict[str, int]
    images: list[ProductImageResponse] = []
    created_at: datetime
    updated_at: datetime


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    user_id: str
    user_name: Optional[str] = None
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class ProductDetail(ProductResponse):
    """Full product detail with reviews, brand and category."""

    brand: Optional[BrandResponse] = None
    category: Optional[CategoryResponse] = None
    reviews: list[ReviewResponse] = []


class ProductListResponse(BaseModel):
    """Paginated product list."""

    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class StockAdjustment(BaseModel):
    quantity: int  # positive = restock, negative = correction
    notes: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("quantity must be non-zero")
        return v


# ============================================================================
# REVIEW SCHEMAS
# ============================================================================


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=100)
    comment: Optional[str] = Field(None, max_length=1000)


class UserReviewResponse(ReviewResponse):
    product_name: str
    product_slug: str


# ============================================================================
# ORDER VALUE TYPES
# ============================================================================


class ShippingAddress(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: AddressType = AddressType.HOME
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "United States"


class DiscountInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: Optional[str] = Field(None, max_length=50)
    type: AdjustmentType = AdjustmentType.PERCENTAGE
    value: Decimal = Field(Decimal("0"), ge=0)
    amount: Decimal = Decimal("0")


class TaxInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: Decimal
    type: AdjustmentType
    amount: Decimal


class ShippingInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: ShippingMethod
    cost: Decimal
    address: Optional[ShippingAddress] = None
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None


class PaymentInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod
    status: PaymentStatus
    amount: Decimal
    transaction_id: Optional[str] = None
    currency: str


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    items: list[OrderItemRequest] = []
    shipping_method: Optional[ShippingMethod] = None
    payment_method: PaymentMethod
    shipping_address: Optional[ShippingAddress] = None
    notes: Optional[str] = Field(None, max_length=1000)
    is_gift: bool = False
    gift_message: Optional[str] = Field(None, max_length=500)
    source: OrderSource = OrderSource.WEB


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    price_current: Decimal
    primary_image_url: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    price: Decimal
    total: Decimal
    product: Optional[ProductSummary] = None


class OrderResponse(BaseModel):
    id: uuid.UUID
    order_number: str
    user_id: str
    items: list[OrderItemResponse]
    item_count: int
    subtotal: Decimal
    tax: TaxInfo
    discount: DiscountInfo
    shipping: ShippingInfo
    total: Decimal
    status: OrderStatus
    payment: PaymentInfo
    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    is_gift: bool
    gift_message: Optional[str] = None
    source: OrderSource
    is_paid: bool
    is_shipped: bool
    is_delivered: bool
    can_cancel: bool
    can_refund: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            items=[OrderItemResponse.model_validate(item) for item in order.items],
            item_count=order.item_count,
            subtotal=order.subtotal,
            tax=TaxInfo(
                rate=order.tax_rate, type=order.tax_type, amount=order.tax_amount
            ),
            discount=DiscountInfo(
                code=order.discount_code,
                type=order.discount_type,
                value=order.discount_value,
                amount=order.discount_amount,
            ),
            shipping=ShippingInfo(
                method=order.shipping_method,
                cost=order.shipping_cost,
                address=order.shipping_address,
                tracking_number=order.tracking_number,
                estimated_delivery=order.estimated_delivery,
                actual_delivery=order.actual_delivery,
            ),
            total=order.total,
            status=order.status,
            payment=PaymentInfo(
                method=order.payment_method,
                status=order.payment_status,
                amount=order.payment_amount,
                transaction_id=order.payment_transaction_id,
                currency=order.currency,
            ),
            customer_notes=order.customer_notes,
            internal_notes=order.internal_notes,
            is_gift=order.is_gift,
            gift_message=order.gift_message,
            source=order.source,
            is_paid=order.is_paid,
            is_shipped=order.is_shipped,
            is_delivered=order.is_delivered,
            can_cancel=order.can_cancel,
            can_refund=order.can_refund,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None


class TrackingUpdate(BaseModel):
    tracking_number: str = Field(..., min_length=1, max_length=100)
    estimated_delivery: Optional[datetime] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class TrackingResponse(BaseModel):
    order_number: str
    status: OrderStatus
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None


class InvoiceLine(BaseModel):
    product: str
    quantity: int
    price: Decimal
    total: Decimal


class InvoiceResponse(BaseModel):
    order_number: str
    order_date: datetime
    customer_id: str
    items: list[InvoiceLine]
    subtotal: Decimal
    tax: TaxInfo
    discount: DiscountInfo
    shipping: ShippingInfo
    total: Decimal
    status: OrderStatus


class OrderStatsEntry(BaseModel):
    status: OrderStatus
    count: int
    total: Decimal


# ============================================================================
# ADMIN DASHBOARD
# ============================================================================


class DashboardTotals(BaseModel):
    total_customers: int
    total_products: int
    total_orders: int
    total_revenue: Decimal


class DashboardResponse(BaseModel):
    stats: DashboardTotals
    recent_orders: list[OrderResponse]
    low_stock_products: list[ProductResponse]
    top_products: list[ProductResponse]


# ============================================================================
# PRODUCT FILTERS
# ============================================================================


class PriceRange(BaseModel):
    min_price: Decimal = Decimal("0")
    max_price: Decimal = Decimal("0")


class ProductFilters(BaseModel):
    """Facet summary for a product filter set."""

    price_range: PriceRange
    brands: int
    categories: int


# ============================================================================
# PROMOTION SCHEMAS
# ============================================================================


class PromotionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    subtitle: Optional[str] = None
    description: Optional[str] = None
    type: PromotionType
    image_url: Optional[str] = None
    image_alt: Optional[str] = None
    icon: str
    eco_icon: str
    badge: Optional[str] = None
    cta_text: str
    cta_link: Optional[str] = None
    bg_color: str
    text_color: str
    is_active: bool
    is_featured: bool
    display_order: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_expired: bool = False
    is_active_now: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_promotion(
        cls, promotion: Promotion, *, is_expired: bool, is_active_now: bool
    ) -> "PromotionResponse":
        view = cls.model_validate(promotion)
        return view.model_copy(
            update={"is_expired": is_expired, "is_active_now": is_active_now}
        )
