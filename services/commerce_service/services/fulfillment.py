"""Order fulfillment: placement, reorder, and the order status lifecycle.

Stock is taken per line item, in request order, with a conditional update
(``stock >= quantity``), so concurrent checkouts can never oversell. All
writes of one placement share a transaction; any failure rolls back the
stock already taken for earlier lines of the same request.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    InsufficientStock,
    InvalidInput,
    NotFound,
    StateConflict,
    Unavailable,
)
from libs.common.logging import get_logger
from services.commerce_service.models import (
    AdjustmentType,
    AuditEntityType,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    ShippingMethod,
)
from services.commerce_service.schemas import (
    DashboardResponse,
    DashboardTotals,
    DiscountInfo,
    InvoiceLine,
    InvoiceResponse,
    OrderItemRequest,
    OrderResponse,
    OrderStatsEntry,
    ProductResponse,
    ShippingAddress,
    TrackingResponse,
)
from services.commerce_service.services import catalog
from services.commerce_service.services.audit import log_audit
from services.commerce_service.services.inventory import decrement_stock
from services.commerce_service.services.pricing import (
    line_total,
    shipping_cost_for,
    to_money,
)
from sqlalchemy import distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass(frozen=True)
class FulfillmentConfig:
    """Pricing and numbering knobs, fixed for the lifetime of an engine."""

    tax_rate: Decimal = Decimal("8")
    shipping_rates: Mapping[str, Decimal] = field(
        default_factory=lambda: MappingProxyType(
            {
                ShippingMethod.STANDARD.value: Decimal("5.99"),
                ShippingMethod.EXPRESS.value: Decimal("12.99"),
                ShippingMethod.OVERNIGHT.value: Decimal("24.99"),
                ShippingMethod.PICKUP.value: Decimal("0"),
            }
        )
    )
    default_shipping_method: ShippingMethod = ShippingMethod.STANDARD
    order_number_prefix: str = "BN"
    currency: str = "USD"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FulfillmentConfig":
        settings = settings or get_settings()
        return cls(
            tax_rate=Decimal(str(settings.TAX_RATE_PERCENT)),
            shipping_rates=MappingProxyType(
                {k: Decimal(str(v)) for k, v in settings.SHIPPING_RATES.items()}
            ),
            default_shipping_method=ShippingMethod(settings.DEFAULT_SHIPPING_METHOD),
            order_number_prefix=settings.ORDER_NUMBER_PREFIX,
            currency=settings.CURRENCY,
        )

    def resolve_shipping_method(self, method) -> ShippingMethod:
        """Known methods pass through; anything else becomes the default."""
        value = getattr(method, "value", method)
        if value in self.shipping_rates:
            try:
                return ShippingMethod(value)
            except ValueError:
                pass
        return self.default_shipping_method


def _order_options():
    return (
        selectinload(Order.items)
        .selectinload(OrderItem.product)
        .selectinload(Product.images),
    )


class OrderFulfillment:
    """Order workflows bound to one database session."""

    def __init__(self, db: AsyncSession, config: FulfillmentConfig):
        self.db = db
        self.config = config

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def _take_line(
        self, product_id: uuid.UUID, quantity: int, position: int
    ) -> OrderItem:
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFound(
                f"Product {product_id} not found",
                details={"product_id": str(product_id)},
            )
        if not product.is_available:
            raise Unavailable(
                f"Product {product.name} is not available",
                details={"product_id": str(product_id)},
            )

        price = to_money(product.price_current)
        name = product.name
        if not await decrement_stock(self.db, product_id, quantity):
            raise InsufficientStock(
                f"Insufficient stock for {name}",
                details={"product_id": str(product_id), "requested": quantity},
            )
        return OrderItem(
            product_id=product_id,
            position=position,
            product_name=name,
            quantity=quantity,
            price=price,
            total=line_total(price, quantity),
        )

    def _new_order(
        self,
        user_id: str,
        items: list[OrderItem],
        *,
        shipping_method,
        payment_method: PaymentMethod,
        shipping_address: Optional[dict],
        notes: Optional[str] = None,
        is_gift: bool = False,
        gift_message: Optional[str] = None,
        discount: Optional[DiscountInfo] = None,
        source: OrderSource = OrderSource.WEB,
    ) -> Order:
        method = self.config.resolve_shipping_method(shipping_method)
        order = Order(
            order_number=Order.generate_order_number(self.config.order_number_prefix),
            user_id=user_id,
            items=items,
            tax_rate=self.config.tax_rate,
            tax_type=AdjustmentType.PERCENTAGE,
            discount_code=discount.code if discount else None,
            discount_type=discount.type if discount else AdjustmentType.PERCENTAGE,
            discount_value=discount.value if discount else Decimal("0"),
            shipping_method=method,
            shipping_cost=shipping_cost_for(
                method,
                self.config.shipping_rates,
                self.config.default_shipping_method.value,
            ),
            shipping_address=shipping_address,
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING,
            currency=self.config.currency,
            customer_notes=notes,
            is_gift=is_gift,
            gift_message=gift_message,
            source=source,
        )
        order.recalculate_totals()
        return order

    async def place_order(
        self,
        user_id: str,
        items: Sequence[OrderItemRequest],
        shipping_method: Optional[ShippingMethod],
        payment_method: PaymentMethod,
        shipping_address: Optional[ShippingAddress],
        notes: Optional[str] = None,
        is_gift: bool = False,
        gift_message: Optional[str] = None,
        discount: Optional[DiscountInfo] = None,
        source: OrderSource = OrderSource.WEB,
    ) -> Order:
        """Price the cart, take stock for every line and persist a pending order.

        Raises:
            InvalidInput: no items.
            NotFound: a product does not exist.
            Unavailable: a product is inactive or unpublished.
            InsufficientStock: a line asks for more than is left.
        """
        if not items:
            raise InvalidInput("Order must contain at least one item")

        try:
            lines = [
                await self._take_line(item.product_id, item.quantity, position)
                for position, item in enumerate(items)
            ]
            order = self._new_order(
                user_id,
                lines,
                shipping_method=shipping_method,
                payment_method=payment_method,
                shipping_address=(
                    shipping_address.model_dump(mode="json") if shipping_address else None
                ),
                notes=notes,
                is_gift=is_gift,
                gift_message=gift_message,
                discount=discount,
                source=source,
            )
            self.db.add(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Order %s placed by %s (%d items, total %s)",
            order.order_number,
            user_id,
            order.item_count,
            order.total,
        )
        return await self.load_order(order.id)

    async def reorder(self, order_id: uuid.UUID, user_id: str) -> Order:
        """Place a new order from a past one, skipping lines that can't be filled.

        Uses standard shipping, the source order's address and a pending payment
        method. Raises InvalidInput when no line survives.
        """
        original = await self.get_order(order_id, user_id)
        wanted = [(item.product_id, item.quantity) for item in original.items]
        note = f"Reorder from order {original.order_number}"
        address = original.shipping_address

        try:
            lines = []
            for product_id, quantity in wanted:
                try:
                    lines.append(await self._take_line(product_id, quantity, len(lines)))
                except (NotFound, Unavailable, InsufficientStock) as e:
                    logger.info("Reorder skipped product %s: %s", product_id, e.message)
            if not lines:
                raise InvalidInput("No products from this order are currently available")

            order = self._new_order(
                user_id,
                lines,
                shipping_method=ShippingMethod.STANDARD,
                payment_method=PaymentMethod.PENDING,
                shipping_address=address,
                notes=note,
            )
            self.db.add(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("Order %s created as reorder of %s", order.order_number, order_id)
        return await self.load_order(order.id)

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    async def cancel_order(
        self, order_id: uuid.UUID, user_id: str, reason: Optional[str] = None
    ) -> Order:
        order = await self.get_order(order_id, user_id)
        if not order.can_cancel:
            raise StateConflict(
                "Order cannot be cancelled in current status",
                details={"status": order.status.value},
            )
        order.status = OrderStatus.CANCELLED
        if reason:
            order.internal_notes = reason
        await self._save(order)
        logger.info("Order %s cancelled by customer", order.order_number)
        return order

    async def update_status(
        self,
        order_id: uuid.UUID,
        status: OrderStatus,
        performed_by: str,
        notes: Optional[str] = None,
    ) -> Order:
        """Set an arbitrary status (admin). Cancelling still honours the guard."""
        order = await self.load_order(order_id)
        if status == OrderStatus.CANCELLED and not order.can_cancel:
            raise StateConflict(
                "Order cannot be cancelled in current status",
                details={"status": order.status.value},
            )

        old_status = order.status
        order.status = status
        if status == OrderStatus.DELIVERED and order.actual_delivery is None:
            order.actual_delivery = utc_now()
        if notes:
            order.internal_notes = notes

        log_audit(
            self.db,
            entity_type=AuditEntityType.ORDER,
            entity_id=order.id,
            action="status_changed",
            performed_by=performed_by,
            old_value={"status": old_status.value},
            new_value={"status": status.value},
            notes=notes,
        )
        await self._save(order)
        logger.info(
            "Order %s status %s -> %s", order.order_number, old_status.value, status.value
        )
        return order

    async def add_tracking(
        self,
        order_id: uuid.UUID,
        tracking_number: str,
        performed_by: str,
        estimated_delivery: Optional[datetime] = None,
    ) -> Order:
        order = await self.load_order(order_id)
        old_status = order.status
        order.tracking_number = tracking_number
        if estimated_delivery:
            order.estimated_delivery = estimated_delivery
        order.status = OrderStatus.SHIPPED

        log_audit(
            self.db,
            entity_type=AuditEntityType.ORDER,
            entity_id=order.id,
            action="tracking_added",
            performed_by=performed_by,
            old_value={"status": old_status.value},
            new_value={"status": order.status.value, "tracking_number": tracking_number},
        )
        await self._save(order)
        logger.info("Order %s shipped with tracking %s", order.order_number, tracking_number)
        return order

    async def mark_delivered(self, order_id: uuid.UUID, performed_by: str) -> Order:
        """Force ``delivered``. Safe to retry: the first delivery time is kept."""
        order = await self.load_order(order_id)
        if order.status == OrderStatus.DELIVERED and order.actual_delivery is not None:
            return order

        old_status = order.status
        order.status = OrderStatus.DELIVERED
        if order.actual_delivery is None:
            order.actual_delivery = utc_now()

        log_audit(
            self.db,
            entity_type=AuditEntityType.ORDER,
            entity_id=order.id,
            action="delivered",
            performed_by=performed_by,
            old_value={"status": old_status.value},
            new_value={"status": order.status.value},
        )
        await self._save(order)
        logger.info("Order %s delivered", order.order_number)
        return order

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_order(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(*_order_options())
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFound("Order not found")
        return order

    async def _save(self, order: Order) -> None:
        order.recalculate_totals()
        await self.db.commit()

    async def get_order(self, order_id: uuid.UUID, user_id: str) -> Order:
        """Load an order owned by ``user_id`` (other users' orders are NotFound)."""
        order = await self.load_order(order_id)
        if order.user_id != user_id:
            raise NotFound("Order not found")
        return order

    async def _page(self, query, page: int, page_size: int) -> tuple[list[Order], int]:
        total = await self.db.scalar(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        result = await self.db.execute(
            query.options(*_order_options())
            .order_by(Order.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    async def list_orders_for_user(
        self,
        user_id: str,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[Order], int]:
        query = select(Order).where(Order.user_id == user_id)
        if status:
            query = query.where(Order.status == status)
        return await self._page(query, page, page_size)

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[Order], int]:
        """All orders (admin), optionally filtered by status or number/city search."""
        query = select(Order)
        if status:
            query = query.where(Order.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Order.order_number.ilike(pattern),
                    Order.shipping_address["city"].as_string().ilike(pattern),
                )
            )
        return await self._page(query, page, page_size)

    async def get_tracking(self, order_id: uuid.UUID, user_id: str) -> TrackingResponse:
        order = await self.get_order(order_id, user_id)
        return TrackingResponse(
            order_number=order.order_number,
            status=order.status,
            tracking_number=order.tracking_number,
            estimated_delivery=order.estimated_delivery,
            actual_delivery=order.actual_delivery,
        )

    async def build_invoice(self, order_id: uuid.UUID, user_id: str) -> InvoiceResponse:
        order = await self.get_order(order_id, user_id)
        view = OrderResponse.from_order(order)
        return InvoiceResponse(
            order_number=order.order_number,
            order_date=order.created_at,
            customer_id=order.user_id,
            items=[
                InvoiceLine(
                    product=item.product_name,
                    quantity=item.quantity,
                    price=item.price,
                    total=item.total,
                )
                for item in order.items
            ],
            subtotal=order.subtotal,
            tax=view.tax,
            discount=view.discount,
            shipping=view.shipping,
            total=order.total,
            status=order.status,
        )

    async def order_stats(self) -> list[OrderStatsEntry]:
        """Order count and summed total per status, busiest status first."""
        count = func.count(Order.id)
        result = await self.db.execute(
            select(Order.status, count, func.coalesce(func.sum(Order.total), 0))
            .group_by(Order.status)
            .order_by(count.desc())
        )
        return [
            OrderStatsEntry(status=status, count=n, total=to_money(total))
            for status, n, total in result.all()
        ]

    # ------------------------------------------------------------------
    # Admin dashboard
    # ------------------------------------------------------------------

    async def revenue(self) -> Decimal:
        """Sum of order totals whose payment completed."""
        total = await self.db.scalar(
            select(func.coalesce(func.sum(Order.total), 0)).where(
                Order.payment_status == PaymentStatus.COMPLETED
            )
        )
        return to_money(total)

    async def recent_orders(self, limit: int = 5) -> list[Order]:
        result = await self.db.execute(
            select(Order)
            .options(*_order_options())
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def dashboard(self) -> DashboardResponse:
        """Store-wide counts, revenue, recent orders and product highlights."""
        customers = await self.db.scalar(select(func.count(distinct(Order.user_id))))
        orders = await self.db.scalar(select(func.count(Order.id)))
        low_stock = await catalog.list_low_stock(self.db, limit=10)
        top_rated = await catalog.top_rated_products(self.db, limit=10)
        return DashboardResponse(
            stats=DashboardTotals(
                total_customers=customers or 0,
                total_products=await catalog.count_products(self.db),
                total_orders=orders or 0,
                total_revenue=await self.revenue(),
            ),
            recent_orders=[OrderResponse.from_order(o) for o in await self.recent_orders()],
            low_stock_products=[ProductResponse.model_validate(p) for p in low_stock],
            top_products=[ProductResponse.model_validate(p) for p in top_rated],
        )
