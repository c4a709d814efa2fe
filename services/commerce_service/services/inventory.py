"""Atomic stock updates.

Stock is never read-then-written. Every change is a single conditional
UPDATE whose predicate keeps stock non-negative, so two concurrent orders
for the last unit cannot both succeed.
"""

import uuid

from libs.common.logging import get_logger
from services.commerce_service.models import Product
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def adjust_stock(db: AsyncSession, product_id: uuid.UUID, delta: int) -> bool:
    """Add ``delta`` (may be negative) to a product's stock.

    Returns ``False`` without writing when the product does not exist or the
    result would drop below zero.
    """
    new_stock = Product.stock + delta
    stmt = update(Product).where(Product.id == product_id)
    if delta < 0:
        stmt = stmt.where(Product.stock >= -delta)
    stmt = stmt.values(stock=new_stock, is_in_stock=new_stock > 0).execution_options(
        synchronize_session=False
    )

    result = await db.execute(stmt)
    applied = result.rowcount == 1
    if not applied:
        logger.warning(
            "Stock adjustment rejected for product %s (delta=%d)", product_id, delta
        )
    return applied


async def decrement_stock(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> bool:
    """Take ``quantity`` units iff at least that many are in stock."""
    return await adjust_stock(db, product_id, -quantity)

