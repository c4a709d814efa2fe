"""Commerce models: orders, order items, audit logs."""

import random
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import epoch_millis, utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import (
    CANCELLABLE_STATUSES,
    REFUNDABLE_STATUSES,
    AdjustmentType,
    AuditEntityType,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingMethod,
    enum_values,
)
from services.commerce_service.services import pricing
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# Shared by the tax and discount columns
ADJUSTMENT_TYPE = SAEnum(
    AdjustmentType, values_callable=enum_values, name="adjustment_type_enum"
)

# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """Customer order.

    Monetary fields are derived; ``recalculate_totals`` must run before every
    save so they always reflect the current item, tax, discount and shipping
    state.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Pricing
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0)
    tax_type: Mapped[AdjustmentType] = mapped_column(
        ADJUSTMENT_TYPE,
        default=AdjustmentType.PERCENTAGE,
    )
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    discount_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    discount_type: Mapped[AdjustmentType] = mapped_column(
        ADJUSTMENT_TYPE,
        default=AdjustmentType.PERCENTAGE,
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Shipping
    shipping_method: Mapped[ShippingMethod] = mapped_column(
        SAEnum(ShippingMethod, values_callable=enum_values, name="shipping_method_enum"),
        default=ShippingMethod.STANDARD,
    )
    shipping_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    shipping_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, index=True
    )
    estimated_delivery: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_delivery: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Status
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, values_callable=enum_values, name="order_status_enum"),
        default=OrderStatus.PENDING,
        index=True,
    )

    # Payment (status is driven by the external payment provider)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, values_callable=enum_values, name="payment_method_enum"),
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, values_callable=enum_values, name="payment_status_enum"),
        default=PaymentStatus.PENDING,
        index=True,
    )
    payment_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # Notes / extras
    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_gift: Mapped[bool] = mapped_column(Boolean, default=False)
    gift_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[OrderSource] = mapped_column(
        SAEnum(OrderSource, values_callable=enum_values, name="order_source_enum"),
        default=OrderSource.WEB,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="order_subtotal_non_negative"),
        CheckConstraint("total >= 0", name="order_total_non_negative"),
    )

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    @staticmethod
    def generate_order_number(prefix: str = "BN") -> str:
        """Generate an order number like BN12345678042 (ms clock tail + random)."""
        clock_part = str(epoch_millis())[-8:]
        random_part = f"{random.randint(0, 999):03d}"
        return f"{prefix}{clock_part}{random_part}"

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED

    @property
    def is_shipped(self) -> bool:
        return self.status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED)

    @property
    def is_delivered(self) -> bool:
        return self.status == OrderStatus.DELIVERED

    @property
    def can_cancel(self) -> bool:
        return self.status in CANCELLABLE_STATUSES

    @property
    def can_refund(self) -> bool:
        return self.status in REFUNDABLE_STATUSES and self.is_paid

    @property
    def tax(self) -> "pricing.Adjustment":
        return pricing.Adjustment(
            self.tax_rate or 0, self.tax_type or AdjustmentType.PERCENTAGE
        )

    @property
    def discount(self) -> "pricing.Adjustment":
        return pricing.Adjustment(
            self.discount_value or 0, self.discount_type or AdjustmentType.PERCENTAGE
        )

    def recalculate_totals(self) -> None:
        """Re-derive line totals, subtotal, tax, discount, total and payment amount."""
        for item in self.items:
            item.total = pricing.line_total(item.price, item.quantity)

        totals = pricing.compute_totals(
            (item.total for item in self.items),
            tax=self.tax,
            discount=self.discount,
            shipping_cost=self.shipping_cost or 0,
        )
        self.subtotal = totals.subtotal
        self.tax_amount = totals.tax_amount
        self.discount_amount = totals.discount_amount
        self.shipping_cost = totals.shipping_cost
        self.total = totals.total
        self.payment_amount = totals.total

    def __repr__(self):
        return f"<Order {self.order_number} status={self.status}>"


class OrderItem(Base):
    """Order line item (price snapshot at order time)."""

    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="order_item_quantity_positive"),
        CheckConstraint("price >= 0", name="order_item_price_non_negative"),
    )

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    def __repr__(self):
        return f"<OrderItem {self.product_name} qty={self.quantity}>"


# ============================================================================
# AUDIT LOG MODEL
# ============================================================================


class StoreAuditLog(Base):
    """Audit log for admin and hierarchy changes."""

    __tablename__ = "store_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    entity_type: Mapped[AuditEntityType] = mapped_column(
        SAEnum(
            AuditEntityType,
            values_callable=enum_values,
            name="audit_entity_type_enum",
        ),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    action: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # e.g., "status_changed", "reparented"

    old_value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_store_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_store_audit_logs_performed_at", "performed_at"),
    )

    def __repr__(self):
        return f"<StoreAuditLog {self.entity_type}:{self.entity_id} {self.action}>"
